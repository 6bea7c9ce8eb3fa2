# StaffDesk - Models
# Import all models here so Alembic and create_all can see them

from .base import Base, TimestampMixin
from .employee import Employee, Role
from .request_type import RequestType, RequestCategory, DEFAULT_REQUEST_TYPES, TIMESHEET_WEEKLY
from .request import Request, RequestStatus, CLOSED_WEEK_STATUSES
from .timesheet import TimesheetTask, TimesheetEntry, TaskType, DEFAULT_TIMESHEET_TASKS
from .leave_balance import (
    LeaveBalance,
    BALANCE_TYPES,
    DEFAULT_ENTITLEMENTS,
    ANNUAL_LEAVE,
    SICK_LEAVE,
    PARENTAL_LEAVE,
    OTHER_LEAVE,
)
from .audit_log import AuditLog, create_audit_entry
from .user_session import UserSession

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "Role",
    "RequestType",
    "RequestCategory",
    "DEFAULT_REQUEST_TYPES",
    "TIMESHEET_WEEKLY",
    "Request",
    "RequestStatus",
    "CLOSED_WEEK_STATUSES",
    "TimesheetTask",
    "TimesheetEntry",
    "TaskType",
    "DEFAULT_TIMESHEET_TASKS",
    "LeaveBalance",
    "BALANCE_TYPES",
    "DEFAULT_ENTITLEMENTS",
    "ANNUAL_LEAVE",
    "SICK_LEAVE",
    "PARENTAL_LEAVE",
    "OTHER_LEAVE",
    "AuditLog",
    "create_audit_entry",
    "UserSession",
]
