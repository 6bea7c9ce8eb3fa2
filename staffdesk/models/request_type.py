# StaffDesk - Request Type Model

from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class RequestCategory(str, Enum):
    """Coarse grouping of request types."""

    TIME_OFF = "time-off"
    TIMESHEET = "timesheet"
    PROFILE = "profile"
    OTHER = "other"


class RequestType(TimestampMixin, Base):
    """
    Catalog of request kinds.

    Seeded at deploy time and soft-disabled through is_active. Rows are
    never hard-deleted while a request references them (the FK from
    requests is RESTRICT on delete).

    Codes are uppercase snake_case ("PAID_LEAVE", "TIMESHEET_WEEKLY").
    """

    __tablename__ = "request_types"

    request_type_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RequestCategory.OTHER.value
    )

    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    requires_approval: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    # Inactive types are rejected for new requests; history keeps the reference
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<RequestType {self.code} ({self.category})>"

    @property
    def is_time_off(self) -> bool:
        return self.category == RequestCategory.TIME_OFF.value

    @property
    def is_timesheet(self) -> bool:
        return self.category == RequestCategory.TIMESHEET.value


TIMESHEET_WEEKLY = "TIMESHEET_WEEKLY"


# Default request types to seed on initial setup
DEFAULT_REQUEST_TYPES = [
    {"code": "PAID_LEAVE", "name": "Paid Leave", "category": "time-off", "description": "Paid annual leave"},
    {"code": "UNPAID_LEAVE", "name": "Unpaid Leave", "category": "time-off", "description": "Unpaid annual leave"},
    {"code": "PAID_SICK_LEAVE", "name": "Paid Sick Leave", "category": "time-off", "description": "Paid sick leave"},
    {"code": "UNPAID_SICK_LEAVE", "name": "Unpaid Sick Leave", "category": "time-off", "description": "Unpaid sick leave"},
    {"code": "PARENTAL_LEAVE", "name": "Parental Leave", "category": "time-off", "description": "Maternity or paternity leave"},
    {"code": "OTHER_LEAVE", "name": "Other Leave", "category": "time-off", "description": "Bereavement, personal and other leave"},
    {"code": "WFH", "name": "Work From Home", "category": "time-off", "description": "Work from home"},
    {"code": TIMESHEET_WEEKLY, "name": "Weekly Timesheet", "category": "timesheet", "description": "Weekly timesheet submission"},
    {"code": "PROFILE_UPDATE", "name": "Profile Update", "category": "profile", "description": "Profile update request"},
    {"code": "PROFILE_ID_CHANGE", "name": "Profile ID Change", "category": "profile", "description": "Change of identity document fields"},
]
