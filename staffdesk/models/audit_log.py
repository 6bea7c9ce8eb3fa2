# StaffDesk - Audit Log Model

from datetime import datetime
from typing import Optional, TYPE_CHECKING
import json

from sqlalchemy import String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, fk, utcnow

if TYPE_CHECKING:
    from .employee import Employee


class AuditLog(Base):
    """
    Change history for workflow tables.

    Request submissions, status transitions, timesheet adjustments and
    entitlement changes each leave one row here. old_values/new_values
    hold JSON snapshots of the row before and after the change.

    Actions:
        - INSERT: new_values contains the created record
        - UPDATE: old_values and new_values show before/after
        - DELETE: old_values contains the removed record
    """

    __tablename__ = "audit_log"

    audit_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    table_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True
    )

    record_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True
    )

    # INSERT, UPDATE, DELETE
    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False
    )

    # Comma-separated, UPDATE only
    changed_fields: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True
    )

    old_values: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_values: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    performed_by: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=False,
        index=True
    )

    performed_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
        index=True
    )

    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),  # Supports IPv6
        nullable=True
    )

    # e.g. "approve", "timesheet adjust"
    context: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True
    )

    performer: Mapped["Employee"] = relationship(
        "Employee",
        foreign_keys=[performed_by]
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.table_name}:{self.record_id} by {self.performed_by}>"

    def get_old_values(self) -> Optional[dict]:
        return json.loads(self.old_values) if self.old_values else None

    def get_new_values(self) -> Optional[dict]:
        return json.loads(self.new_values) if self.new_values else None


def create_audit_entry(
    table_name: str,
    record_id: int,
    action: str,
    performed_by: int,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
    changed_fields: Optional[list[str]] = None,
    ip_address: Optional[str] = None,
    context: Optional[str] = None,
) -> AuditLog:
    """Build an AuditLog row (not yet added to the session)."""
    return AuditLog(
        table_name=table_name,
        record_id=record_id,
        action=action,
        performed_by=performed_by,
        old_values=json.dumps(old_values) if old_values else None,
        new_values=json.dumps(new_values) if new_values else None,
        changed_fields=",".join(changed_fields) if changed_fields else None,
        ip_address=ip_address,
        context=context,
    )
