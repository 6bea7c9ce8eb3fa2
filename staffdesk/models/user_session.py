# StaffDesk - User Session Model
# Session tokens handed out after the SSO hand-off

from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, Boolean, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, fk, utcnow

if TYPE_CHECKING:
    from .employee import Employee


class UserSession(Base):
    """
    Database-backed API session.

    Sign-in happens upstream; once the identity provider has vouched for an
    employee a token is issued here and presented on every call, either as
    the staffdesk_session cookie or as a Bearer token. Keeping sessions in
    the database makes revocation immediate.
    """

    __tablename__ = "user_sessions"

    __table_args__ = (
        Index("ix_user_sessions_employee_active", "employee_id", "is_active"),
    )

    session_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=False,
        index=True
    )

    session_token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True
    )

    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False
    )

    last_activity_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    logged_out_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)

    employee: Mapped["Employee"] = relationship(
        "Employee",
        foreign_keys=[employee_id]
    )

    def __repr__(self) -> str:
        status = "active" if self.is_active else "inactive"
        return f"<UserSession {self.session_id} ({status}) for employee {self.employee_id}>"

    @property
    def is_expired(self) -> bool:
        return utcnow() > self.expires_at

    @property
    def is_valid(self) -> bool:
        return self.is_active and not self.is_expired
