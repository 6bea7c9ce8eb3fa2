# StaffDesk - Workflow Errors
# Typed failures raised by the services and mapped to HTTP in main.py

from decimal import Decimal
from typing import Optional


class WorkflowError(Exception):
    """Base class. message is safe to show to the caller."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    """The id does not resolve (or is not visible to the caller)."""

    kind = "not_found"


class ForbiddenError(WorkflowError):
    """The caller lacks ownership or role for the action."""

    kind = "forbidden"


class InvalidStateError(WorkflowError):
    """The action is not valid for the request's current status."""

    kind = "invalid_state"


class ValidationFailedError(WorkflowError):
    """Malformed input: bad dates, missing reason, out-of-range hours..."""

    kind = "validation_failed"

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class InsufficientBalanceError(WorkflowError):
    """Requested days exceed the remaining entitlement."""

    kind = "insufficient_balance"

    def __init__(self, message: str, remaining: Decimal, requested: Decimal):
        super().__init__(message)
        self.remaining = remaining
        self.requested = requested


class ConflictError(WorkflowError):
    """A uniqueness rule was violated, usually by a concurrent writer."""

    kind = "conflict"
