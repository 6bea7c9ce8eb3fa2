# StaffDesk - Request Model
# The workflow record behind time-off, timesheet and profile requests

from datetime import datetime, date
from enum import Enum
from typing import Optional, Any, List, TYPE_CHECKING

from sqlalchemy import (
    String, Integer, DateTime, Date, JSON,
    ForeignKey, Index, text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, fk, utcnow

if TYPE_CHECKING:
    from .employee import Employee
    from .request_type import RequestType
    from .timesheet import TimesheetEntry


class RequestStatus(str, Enum):
    """
    Request lifecycle.

    PENDING is the only non-terminal state. APPROVED, REJECTED and
    CANCELLED are all reachable from PENDING only, and nothing leaves them.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Rejected and cancelled timesheets release their week for a new submission
CLOSED_WEEK_STATUSES = (
    RequestStatus.REJECTED.value,
    RequestStatus.CANCELLED.value,
)

LIVE_WEEK_SQL = "week_start_date IS NOT NULL AND status NOT IN ('CANCELLED', 'REJECTED')"


class Request(TimestampMixin, Base):
    """
    A single employee-initiated action awaiting (or past) sign-off.

    Content fields (dates, reason, payload) belong to the requester while
    the request is PENDING. The decision fields (approver_id,
    approval_comment, rejection_reason) are written exactly once, in the
    same statement that moves the request to its terminal status.

    payload holds the category-specific document (see
    staffdesk.schemas.payloads); it is validated before it gets here.

    week_start_date is only set for weekly timesheets. Together with the
    filtered unique index below it keeps one live timesheet per employee
    per week, whatever tasks each submission carries.
    """

    __tablename__ = "requests"

    __table_args__ = (
        Index("ix_requests_requester_status", "requester_id", "status"),
        Index("ix_requests_status_created", "status", "created_at"),
        Index(
            "uq_requests_requester_week",
            "requester_id",
            "week_start_date",
            unique=True,
            sqlite_where=text(LIVE_WEEK_SQL),
            postgresql_where=text(LIVE_WEEK_SQL),
            mssql_where=text(LIVE_WEEK_SQL),
        ),
    )

    request_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # Immutable after creation
    request_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("request_types.request_type_id"), ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    requester_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=False,
        index=True
    )

    # Set together with the terminal status
    approver_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RequestStatus.PENDING.value
    )

    requested_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False
    )

    # Inclusive date range; absent for undated request types
    effective_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    effective_to: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    week_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    reason: Mapped[str] = mapped_column(String(1000), nullable=False)

    payload: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True
    )

    approval_comment: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True
    )

    rejection_reason: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True
    )

    decided_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True
    )

    # Relationships
    request_type: Mapped["RequestType"] = relationship(
        "RequestType",
        lazy="joined"
    )

    requester: Mapped["Employee"] = relationship(
        "Employee",
        foreign_keys=[requester_id]
    )

    approver: Mapped[Optional["Employee"]] = relationship(
        "Employee",
        foreign_keys=[approver_id]
    )

    entries: Mapped[List["TimesheetEntry"]] = relationship(
        "TimesheetEntry",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TimesheetEntry.task_id",
    )

    def __repr__(self) -> str:
        return f"<Request {self.request_id} type={self.request_type_id} {self.status}>"

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    @property
    def display_id(self) -> Optional[str]:
        """Caller-visible id carried by time-off payloads (e.g. REQ-007)."""
        if self.payload:
            return self.payload.get("request_display_id")
        return None

    @property
    def duration_days(self) -> Optional[int]:
        """Inclusive day count of the effective range."""
        if self.effective_from is None or self.effective_to is None:
            return None
        return (self.effective_to - self.effective_from).days + 1
