# StaffDesk - Time Off Service
# Employee-facing time-off operations on top of the request state machine

from datetime import date, datetime
from typing import Callable, Optional, Union
import logging
import re

from sqlalchemy.orm import Session

from staffdesk.models.request import Request
from staffdesk.models.request_type import RequestCategory
from staffdesk.services.errors import NotFoundError, ValidationFailedError
from staffdesk.services.identity import Actor
from staffdesk.services.leave_balance import BalanceSnapshot
from staffdesk.services.pagination import Page
from staffdesk.services.requests import RequestService, RequestFilter


logger = logging.getLogger(__name__)


DISPLAY_ID_PATTERN = re.compile(r"^REQ-(\d+)$", re.IGNORECASE)


class TimeOffService:
    """
    Time-off submission, cancellation, history and balances.

    Usage:
        service = TimeOffService(db, actor)
        req = service.submit("PAID_LEAVE", date(2025, 6, 2), date(2025, 6, 4), "Holiday")
        service.cancel(req.display_id, comment="Plans changed")
    """

    def __init__(
        self,
        db: Session,
        actor: Actor,
        ip_address: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.actor = actor
        self.requests = RequestService(db, actor, ip_address, clock)

    def _require_time_off(self, request: Request) -> Request:
        if not request.request_type.is_time_off:
            raise ValidationFailedError(f"Request {request.request_id} is not a time-off request")
        return request

    def resolve(self, request_ref: Union[int, str]) -> Request:
        """Accept a surrogate id (42, "42") or a display id ("REQ-042")."""
        if isinstance(request_ref, int):
            return self._require_time_off(self.requests.get(request_ref))

        text = str(request_ref).strip()
        match = DISPLAY_ID_PATTERN.match(text)
        if match:
            request_id = int(match.group(1))
        elif text.isdigit():
            request_id = int(text)
        else:
            raise NotFoundError(f"Request {text} not found")
        return self._require_time_off(self.requests.get(request_id))

    def submit(
        self,
        type_code: str,
        start_date: date,
        end_date: date,
        reason: str,
        attachment_urls: Optional[list[str]] = None,
    ) -> Request:
        """
        Submit a time-off request for the actor.

        Raises:
            ValidationFailedError: not a time-off type, bad dates, missing certificate
            InsufficientBalanceError: not enough days left
        """
        request_type = self.requests.registry.require_active(type_code)
        if not request_type.is_time_off:
            raise ValidationFailedError("Invalid time-off type")

        return self.requests.create(
            request_type.code,
            effective_from=start_date,
            effective_to=end_date,
            reason=reason,
            payload={
                "kind": RequestCategory.TIME_OFF.value,
                "attachment_urls": list(attachment_urls or []),
            },
        )

    def cancel(self, request_ref: Union[int, str], comment: Optional[str] = None) -> Request:
        """Cancel the actor's own pending time-off request. The comment goes in the payload."""
        request = self.resolve(request_ref)
        return self.requests.cancel(request.request_id, comment=comment)

    def history(
        self,
        status: Optional[str] = None,
        type_code: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Page[Request]:
        """The actor's time-off requests, newest first."""
        return self.requests.list(
            RequestFilter(
                employee_id=self.actor.employee_id,
                status=status,
                type_code=type_code,
                category=RequestCategory.TIME_OFF.value,
            ),
            page=page,
            limit=limit,
        )

    def balances(self, year: Optional[int] = None) -> dict[str, BalanceSnapshot]:
        return self.requests.ledger.get_balances(self.actor.employee_id, year)
