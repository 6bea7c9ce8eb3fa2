# StaffDesk - Services
# Business logic layer

from .errors import (
    WorkflowError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ValidationFailedError,
    InsufficientBalanceError,
    ConflictError,
)
from .identity import Actor, EmployeeDirectory, resolve_actor
from .audit import AuditService, AuditQuery
from .auth import AuthService, AuthenticationError
from .request_types import RequestTypeRegistry
from .leave_balance import LeaveBalanceLedger, BalanceSnapshot
from .requests import RequestService, RequestFilter, RequestSummary
from .timesheets import TimesheetService, TimesheetEntryInput, TimesheetResult
from .time_off import TimeOffService

__all__ = [
    "WorkflowError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidStateError",
    "ValidationFailedError",
    "InsufficientBalanceError",
    "ConflictError",
    "Actor",
    "EmployeeDirectory",
    "resolve_actor",
    "AuditService",
    "AuditQuery",
    "AuthService",
    "AuthenticationError",
    "RequestTypeRegistry",
    "LeaveBalanceLedger",
    "BalanceSnapshot",
    "RequestService",
    "RequestFilter",
    "RequestSummary",
    "TimesheetService",
    "TimesheetEntryInput",
    "TimesheetResult",
    "TimeOffService",
]
