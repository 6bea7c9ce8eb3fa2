# StaffDesk - Request Type Registry

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from staffdesk.models.request_type import RequestType
from staffdesk.services.errors import ValidationFailedError


def normalize_code(code: str) -> str:
    """"paid-leave " -> "PAID_LEAVE"."""
    return (code or "").strip().upper().replace("-", "_")


class RequestTypeRegistry:
    """
    Read-only access to the request type catalog.

    Lookups return None on a miss; require_active() turns a miss into the
    validation failure callers report to the user.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_active(self) -> list[RequestType]:
        """Active types ordered by category, then name."""
        return list(self.db.execute(
            select(RequestType)
            .where(RequestType.is_active == True)
            .order_by(RequestType.category, RequestType.name)
        ).scalars().all())

    def list_all(self) -> list[RequestType]:
        """Every type including inactive ones, for administration."""
        return list(self.db.execute(
            select(RequestType).order_by(RequestType.category, RequestType.name)
        ).scalars().all())

    def get_by_code(self, code: str) -> Optional[RequestType]:
        return self.db.execute(
            select(RequestType).where(RequestType.code == normalize_code(code))
        ).scalar_one_or_none()

    def get_by_id(self, request_type_id: int) -> Optional[RequestType]:
        return self.db.get(RequestType, request_type_id)

    def require_active(self, code: str) -> RequestType:
        request_type = self.get_by_code(code)
        if request_type is None or not request_type.is_active:
            raise ValidationFailedError("Invalid request type")
        return request_type
