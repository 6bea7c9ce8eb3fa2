# StaffDesk - Request Service
# The request state machine: create, update, cancel, approve, reject, list

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from staffdesk.config import get_settings
from staffdesk.models.base import utcnow
from staffdesk.models.request import Request, RequestStatus
from staffdesk.models.request_type import RequestType, RequestCategory
from staffdesk.schemas.payloads import (
    RequestPayload,
    TimeOffPayload,
    parse_payload,
    dump_payload,
)
from staffdesk.services.audit import AuditService
from staffdesk.services.errors import (
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ValidationFailedError,
    InsufficientBalanceError,
    ConflictError,
)
from staffdesk.services.identity import Actor, EmployeeDirectory
from staffdesk.services.leave_balance import LeaveBalanceLedger, balance_type_for, duration_days
from staffdesk.services.pagination import Page, clamp_paging
from staffdesk.services.request_types import RequestTypeRegistry


logger = logging.getLogger(__name__)


SICK_LEAVE_CODES = {"PAID_SICK_LEAVE", "UNPAID_SICK_LEAVE"}

# Fields the requester may change while a request is pending
PATCHABLE_FIELDS = {"effective_from", "effective_to", "reason", "payload"}


def format_display_id(request_id: int) -> str:
    return f"REQ-{request_id:03d}"


def parse_month(month: str) -> tuple[datetime, datetime]:
    """"2025-06" -> [2025-06-01 00:00, 2025-07-01 00:00)."""
    try:
        year_text, month_text = month.split("-")
        start = datetime(int(year_text), int(month_text), 1)
    except ValueError:
        raise ValidationFailedError("Month must be in YYYY-MM format")
    if start.month == 12:
        end = datetime(start.year + 1, 1, 1)
    else:
        end = datetime(start.year, start.month + 1, 1)
    return start, end


@dataclass
class RequestFilter:
    employee_id: Optional[int] = None
    status: Optional[str] = None
    type_code: Optional[str] = None
    category: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass
class RequestSummary:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)


class RequestService:
    """
    Lifecycle of a Request.

    PENDING -> APPROVED | REJECTED | CANCELLED, and nothing leaves a
    terminal status. Every transition is a conditional UPDATE on the
    current status, so two concurrent approvals cannot both win: the
    loser sees zero affected rows and gets InvalidStateError.

    The actor is the requester for create/update/cancel and the approver
    for approve/reject. Like the other services this one flushes; the
    route commits.

    Usage:
        service = RequestService(db, actor, request.client.host)
        req = service.create("PAID_LEAVE", date(2025, 6, 2), date(2025, 6, 4), "Family trip")
        service.approve(req.request_id, comment="ok")   # as the manager
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
        self.ip_address = ip_address
        self.clock = clock or utcnow
        self.settings = get_settings()
        self.registry = RequestTypeRegistry(db)
        self.directory = EmployeeDirectory(db)
        self.ledger = LeaveBalanceLedger(
            db,
            performed_by=actor.employee_id,
            ip_address=ip_address,
            clock=self.today,
        )
        self.audit = AuditService(db, actor.employee_id, ip_address)

    def today(self) -> date:
        return self.clock().date()

    # -- lookups -----------------------------------------------------------

    def get(self, request_id: int) -> Request:
        request = self.db.get(Request, request_id)
        if request is None:
            raise NotFoundError(f"Request {request_id} not found")
        return request

    def can_view(self, request: Request, as_admin: bool = False) -> bool:
        """Owner, the owner's manager or HR contact, or an admin acting as admin."""
        if as_admin and self.actor.is_admin:
            return True
        if request.requester_id == self.actor.employee_id:
            return True
        return self._is_decider_for(request.requester_id)

    def get_visible(self, request_id: int, as_admin: bool = False) -> Request:
        request = self.get(request_id)
        if not self.can_view(request, as_admin):
            raise ForbiddenError("You are not allowed to view this request")
        return request

    def _is_decider_for(self, employee_id: int) -> bool:
        if not self.actor.is_manager:
            return False
        return self.actor.employee_id in (
            self.directory.get_manager_of(employee_id),
            self.directory.get_hr_of(employee_id),
        )

    # -- validation helpers ------------------------------------------------

    def _validate_reason(self, reason: Optional[str]) -> str:
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationFailedError("Reason is required")
        return cleaned

    def _validate_dates(
        self,
        request_type: RequestType,
        effective_from: Optional[date],
        effective_to: Optional[date],
    ) -> None:
        if request_type.is_time_off and (effective_from is None or effective_to is None):
            raise ValidationFailedError("Start and end dates are required for time-off requests")
        if (effective_from is None) != (effective_to is None):
            raise ValidationFailedError("Both start and end dates must be given")
        if effective_from is not None and effective_from > effective_to:
            raise ValidationFailedError("Start date must be on or before end date")
        if request_type.is_time_off and effective_from < self.today():
            raise ValidationFailedError("Start date cannot be in the past")

    def _validate_payload(self, request_type: RequestType, raw: Optional[dict[str, Any]]) -> RequestPayload:
        try:
            return parse_payload(request_type.category, raw)
        except ValueError as e:
            raise ValidationFailedError("Invalid payload", errors=[str(e)])

    def _check_time_off_rules(
        self,
        request_type: RequestType,
        effective_from: date,
        effective_to: date,
        payload: RequestPayload,
    ) -> None:
        days = duration_days(effective_from, effective_to)

        if (
            request_type.code in SICK_LEAVE_CODES
            and days > self.settings.sick_leave_attachment_threshold_days
            and not (isinstance(payload, TimeOffPayload) and payload.attachment_urls)
        ):
            raise ValidationFailedError(
                f"Sick leave longer than {self.settings.sick_leave_attachment_threshold_days} "
                "days requires a medical certificate attachment"
            )

        balance_type = balance_type_for(request_type.code)
        if balance_type is None:
            return

        requested = Decimal(days)
        year = effective_from.year
        if not self.ledger.check_sufficiency(self.actor.employee_id, balance_type, year, requested):
            snapshot = self.ledger.get_balance(self.actor.employee_id, balance_type, year)
            raise InsufficientBalanceError(
                f"Insufficient {balance_type} balance: {snapshot.remaining} day(s) remaining, "
                f"{requested} requested",
                remaining=snapshot.remaining,
                requested=requested,
            )

    def _check_single_pending_profile(self, request_type: RequestType) -> None:
        existing = self.db.execute(
            select(Request.request_id).where(
                Request.requester_id == self.actor.employee_id,
                Request.request_type_id == request_type.request_type_id,
                Request.status == RequestStatus.PENDING.value,
            )
        ).first()
        if existing is not None:
            raise ValidationFailedError(
                f"You already have a pending {request_type.name} request"
            )

    # -- create ------------------------------------------------------------

    def new_request(
        self,
        request_type: RequestType,
        reason: str,
        payload: RequestPayload,
        effective_from: Optional[date] = None,
        effective_to: Optional[date] = None,
        week_start_date: Optional[date] = None,
        auto_approve: bool = False,
    ) -> Request:
        """Build (but do not add) a request owned by the actor."""
        now = self.clock()
        approved = auto_approve or not request_type.requires_approval
        request = Request(
            request_type_id=request_type.request_type_id,
            requester_id=self.actor.employee_id,
            status=RequestStatus.APPROVED.value if approved else RequestStatus.PENDING.value,
            requested_at=now,
            created_at=now,
            effective_from=effective_from,
            effective_to=effective_to,
            week_start_date=week_start_date,
            reason=reason,
            payload=dump_payload(payload),
        )
        request.request_type = request_type
        if approved:
            request.approver_id = self.actor.employee_id
            request.decided_at = now
        return request

    def insert_guarded(self, objects: Iterable[Any], conflict_message: str) -> None:
        """
        Add and flush objects inside a SAVEPOINT.

        A unique index violation means another writer got there first;
        nothing from this batch is kept and ConflictError is raised.
        """
        try:
            with self.db.begin_nested():
                self.db.add_all(list(objects))
        except IntegrityError as e:
            logger.warning("Conflict for employee %s: %s", self.actor.employee_id, e.orig)
            raise ConflictError(conflict_message)

    def create(
        self,
        type_code: str,
        effective_from: Optional[date] = None,
        effective_to: Optional[date] = None,
        reason: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> Request:
        """
        Create a request for the actor.

        Raises:
            ValidationFailedError: unknown/inactive type, bad dates, bad payload
            InsufficientBalanceError: time-off beyond the remaining entitlement
        """
        request_type = self.registry.require_active(type_code)
        if request_type.is_timesheet:
            raise ValidationFailedError("Weekly timesheets are submitted through the timesheet endpoints")

        reason = self._validate_reason(reason)
        self._validate_dates(request_type, effective_from, effective_to)
        parsed = self._validate_payload(request_type, payload)

        if request_type.is_time_off:
            self._check_time_off_rules(request_type, effective_from, effective_to, parsed)
        elif request_type.category == RequestCategory.PROFILE.value:
            self._check_single_pending_profile(request_type)

        request = self.new_request(
            request_type,
            reason,
            parsed,
            effective_from=effective_from,
            effective_to=effective_to,
        )
        self.insert_guarded([request], "A conflicting request already exists")

        if isinstance(parsed, TimeOffPayload):
            parsed.request_display_id = format_display_id(request.request_id)
            request.payload = dump_payload(parsed)
            self.db.flush()

        self.audit.log_insert(request, context="create")
        logger.info(
            "Request %s (%s) created by employee %s as %s",
            request.request_id, request_type.code, self.actor.employee_id, request.status,
        )
        return request

    # -- guarded writes ----------------------------------------------------

    def update_if_status(
        self,
        request: Request,
        allowed: Iterable[RequestStatus],
        values: dict[str, Any],
        context: str,
    ) -> Request:
        """
        UPDATE requests SET ... WHERE request_id = ? AND status IN (allowed).

        Zero affected rows means someone else moved the request first.
        """
        allowed_values = [status.value for status in allowed]
        old_state = self.audit.capture_state(request)

        result = self.db.execute(
            update(Request)
            .where(
                Request.request_id == request.request_id,
                Request.status.in_(allowed_values),
            )
            .values(**values, updated_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.refresh(request)
            raise InvalidStateError(
                f"Request {request.request_id} is {request.status.lower()}; cannot {context}"
            )

        self.db.refresh(request)
        self.audit.log_update(request, old_state, context=context)
        return request

    def _require_owner(self, request: Request) -> None:
        if request.requester_id != self.actor.employee_id:
            raise ForbiddenError("Only the requester can change this request")

    def _require_pending(self, request: Request, action: str) -> None:
        if not request.is_pending:
            raise InvalidStateError(
                f"Request {request.request_id} is {request.status.lower()}; cannot {action}"
            )

    def _authorize_decision(self, request: Request) -> None:
        if self.actor.is_admin:
            return
        if not self.actor.is_manager:
            raise ForbiddenError("Manager or admin role required")
        if request.requester_id == self.actor.employee_id:
            raise ForbiddenError("You cannot approve or reject your own request")
        if not self._is_decider_for(request.requester_id):
            raise ForbiddenError("You are not the requester's manager or HR contact")

    # -- transitions -------------------------------------------------------

    def update(self, request_id: int, patch: dict[str, Any]) -> Request:
        """
        Change content fields of a pending request owned by the actor.

        Only effective_from, effective_to, reason and payload can change.
        """
        request = self.get(request_id)
        self._require_owner(request)
        self._require_pending(request, "update")

        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationFailedError(
                "These fields cannot be changed: " + ", ".join(sorted(unknown))
            )

        request_type = request.request_type
        if request_type.is_timesheet:
            raise ValidationFailedError("Use the timesheet adjust endpoint to change a timesheet")

        effective_from = patch.get("effective_from", request.effective_from)
        effective_to = patch.get("effective_to", request.effective_to)
        reason = self._validate_reason(patch.get("reason", request.reason))
        self._validate_dates(request_type, effective_from, effective_to)

        if "payload" in patch:
            raw = dict(patch["payload"] or {})
            if request_type.is_time_off:
                # The display id is system-assigned
                raw["request_display_id"] = request.display_id
            parsed = self._validate_payload(request_type, raw)
        else:
            parsed = self._validate_payload(request_type, request.payload)

        if request_type.is_time_off:
            self._check_time_off_rules(request_type, effective_from, effective_to, parsed)

        request = self.update_if_status(
            request,
            [RequestStatus.PENDING],
            {
                "effective_from": effective_from,
                "effective_to": effective_to,
                "reason": reason,
                "payload": dump_payload(parsed),
            },
            context="update",
        )
        logger.info("Request %s updated by employee %s", request.request_id, self.actor.employee_id)
        return request

    def cancel(self, request_id: int, comment: Optional[str] = None) -> Request:
        """
        Cancel a pending request owned by the actor.

        Cancelling twice fails with InvalidStateError rather than passing
        silently. A comment is kept in time-off payloads.
        """
        request = self.get(request_id)
        self._require_owner(request)
        self._require_pending(request, "cancel")

        values: dict[str, Any] = {"status": RequestStatus.CANCELLED.value}
        if comment and comment.strip() and request.request_type.is_time_off:
            payload = dict(request.payload or {})
            payload["cancellation_comment"] = comment.strip()
            values["payload"] = payload

        request = self.update_if_status(request, [RequestStatus.PENDING], values, context="cancel")
        logger.info("Request %s cancelled by employee %s", request.request_id, self.actor.employee_id)
        return request

    def approve(self, request_id: int, comment: Optional[str] = None) -> Request:
        """
        Approve a pending request.

        Leave balances are not written: the approved days show up in the
        next balance read because used days are derived.
        """
        request = self.get(request_id)
        self._authorize_decision(request)
        self._require_pending(request, "approve")

        request = self.update_if_status(
            request,
            [RequestStatus.PENDING],
            {
                "status": RequestStatus.APPROVED.value,
                "approver_id": self.actor.employee_id,
                "approval_comment": comment.strip() if comment and comment.strip() else None,
                "decided_at": self.clock(),
            },
            context="approve",
        )
        logger.info("Request %s approved by employee %s", request.request_id, self.actor.employee_id)
        return request

    def reject(self, request_id: int, reason: Optional[str]) -> Request:
        """Reject a pending request. The reason is mandatory."""
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationFailedError("A rejection reason is required")

        request = self.get(request_id)
        self._authorize_decision(request)
        self._require_pending(request, "reject")

        request = self.update_if_status(
            request,
            [RequestStatus.PENDING],
            {
                "status": RequestStatus.REJECTED.value,
                "approver_id": self.actor.employee_id,
                "rejection_reason": cleaned,
                "decided_at": self.clock(),
            },
            context="reject",
        )
        logger.info("Request %s rejected by employee %s", request.request_id, self.actor.employee_id)
        return request

    # -- queries -----------------------------------------------------------

    def resolve_scope(self, employee_id: Optional[int], as_admin: bool) -> Optional[int]:
        """
        Resolve which employee a listing is about.

        Admins acting as admin may see everyone (None). Everybody else sees
        their own requests, or those of an employee they manage.
        """
        if as_admin:
            if not self.actor.is_admin:
                raise ForbiddenError("Admin role required")
            if employee_id is not None and not self.directory.exists(employee_id):
                raise NotFoundError(f"Employee {employee_id} not found")
            return employee_id
        if employee_id is None or employee_id == self.actor.employee_id:
            return self.actor.employee_id
        if not self._is_decider_for(employee_id):
            raise ForbiddenError("You are not allowed to view this employee's requests")
        return employee_id

    def _apply_filter(self, query, criteria: RequestFilter):
        if criteria.employee_id is not None:
            query = query.where(Request.requester_id == criteria.employee_id)
        if criteria.status:
            query = query.where(Request.status == criteria.status.upper())
        if criteria.type_code:
            query = query.where(RequestType.code == criteria.type_code.upper().replace("-", "_"))
        if criteria.category:
            query = query.where(RequestType.category == criteria.category)
        if criteria.date_from:
            query = query.where(Request.effective_from >= criteria.date_from)
        if criteria.date_to:
            query = query.where(Request.effective_to <= criteria.date_to)
        return query

    def list(
        self,
        criteria: Optional[RequestFilter] = None,
        page: int = 1,
        limit: Optional[int] = None,
        as_admin: bool = False,
    ) -> Page[Request]:
        """
        Newest first. date_from keeps requests starting on or after it;
        date_to keeps requests ending on or before it.
        """
        criteria = criteria or RequestFilter()
        criteria.employee_id = self.resolve_scope(criteria.employee_id, as_admin)
        page, limit = clamp_paging(page, limit)

        base = self._apply_filter(
            select(Request).join(RequestType, Request.request_type_id == RequestType.request_type_id),
            criteria,
        )
        total = self.db.execute(
            select(func.count()).select_from(base.subquery())
        ).scalar_one()

        items = self.db.execute(
            base.order_by(Request.created_at.desc(), Request.request_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().unique().all()

        return Page(items=list(items), total=total, page=page, limit=limit)

    def summary(
        self,
        employee_id: Optional[int] = None,
        month: Optional[str] = None,
        type_code: Optional[str] = None,
        as_admin: bool = False,
    ) -> RequestSummary:
        """Counts by status and by type code, optionally for one created_at month."""
        criteria = RequestFilter(
            employee_id=self.resolve_scope(employee_id, as_admin),
            type_code=type_code,
        )

        def scoped(query):
            query = self._apply_filter(
                query.join(RequestType, Request.request_type_id == RequestType.request_type_id),
                criteria,
            )
            if month:
                start, end = parse_month(month)
                query = query.where(Request.created_at >= start, Request.created_at < end)
            return query

        by_status = {status.value.lower(): 0 for status in RequestStatus}
        for status, count in self.db.execute(
            scoped(select(Request.status, func.count(Request.request_id)).select_from(Request))
            .group_by(Request.status)
        ).all():
            by_status[status.lower()] = count

        by_type = {
            code: count
            for code, count in self.db.execute(
                scoped(select(RequestType.code, func.count(Request.request_id)).select_from(Request))
                .group_by(RequestType.code)
                .order_by(RequestType.code)
            ).all()
        }

        return RequestSummary(total=sum(by_status.values()), by_status=by_status, by_type=by_type)
