# StaffDesk - Timesheet Service
# Weekly timesheets: one Request per employee per week, N task-hour entries

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Optional
import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from staffdesk.models.request import Request, RequestStatus, CLOSED_WEEK_STATUSES
from staffdesk.models.request_type import RequestType, RequestCategory, TIMESHEET_WEEKLY
from staffdesk.models.timesheet import TimesheetTask, TimesheetEntry, TaskType
from staffdesk.schemas.payloads import TimesheetPayload, TimesheetSummary, dump_payload
from staffdesk.services.errors import (
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    ValidationFailedError,
    ConflictError,
)
from staffdesk.services.identity import Actor
from staffdesk.services.pagination import Page, clamp_paging
from staffdesk.services.requests import RequestService


logger = logging.getLogger(__name__)


MAX_ENTRY_HOURS = Decimal("168")
HUNDREDTH = Decimal("0.01")

ADJUSTABLE_STATUSES = (RequestStatus.PENDING, RequestStatus.REJECTED)


def week_bounds(week_start: date) -> tuple[date, date]:
    """Monday and the Sunday six days later."""
    return week_start, week_start + timedelta(days=6)


@dataclass
class TimesheetEntryInput:
    task_id: int
    hours: Any


@dataclass
class TimesheetResult:
    request: Request
    entries: list[TimesheetEntry]
    summary: TimesheetSummary

    @property
    def week_start_date(self) -> date:
        return self.request.effective_from

    @property
    def week_end_date(self) -> date:
        return self.request.effective_to


class TimesheetService:
    """
    Weekly timesheet submission and adjustment.

    A timesheet is a Request of the TIMESHEET_WEEKLY type covering
    Monday..Sunday, plus one TimesheetEntry per task. Entries are always
    validated as a whole batch before anything is written, and the request
    and its entries are inserted in one SAVEPOINT so a failure leaves
    nothing behind.

    Status changes go through RequestService, which owns the state machine.

    Usage:
        service = TimesheetService(db, actor, request.client.host)
        result = service.submit(date(2025, 6, 2), [
            TimesheetEntryInput(task_id=1, hours="20"),
            TimesheetEntryInput(task_id=3, hours="5"),
        ])
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
        self.audit = self.requests.audit
        self.settings = self.requests.settings
        self.directory = self.requests.directory

    # -- validation --------------------------------------------------------

    def _validate_week(self, week_start_date: date) -> None:
        if week_start_date.weekday() != 0:
            raise ValidationFailedError("Week start date must be a Monday")

    def _validate_entries(self, entries: Iterable[Any]) -> list[tuple[TimesheetTask, Decimal]]:
        """
        Check the whole batch and return (task, hours) pairs.

        All problems are collected so the caller can fix them in one go.
        """
        entries = list(entries or [])
        if not entries:
            raise ValidationFailedError("At least one timesheet entry is required")

        task_ids = {entry.task_id for entry in entries}
        tasks = {
            task.task_id: task
            for task in self.db.execute(
                select(TimesheetTask).where(TimesheetTask.task_id.in_(task_ids))
            ).scalars().all()
        }

        errors = []
        validated = []
        seen = set()
        total = Decimal("0")

        for entry in entries:
            task = tasks.get(entry.task_id)
            if entry.task_id in seen:
                errors.append(f"Task {entry.task_id} appears more than once")
                continue
            seen.add(entry.task_id)

            if task is None:
                errors.append(f"Task {entry.task_id} does not exist")
                continue
            if not task.is_active:
                errors.append(f"Task {task.task_code} is not active")
                continue

            try:
                hours = Decimal(str(entry.hours))
            except InvalidOperation:
                errors.append(f"Hours for task {task.task_code} are not a number")
                continue
            if not hours.is_finite():
                errors.append(f"Hours for task {task.task_code} are not a number")
                continue

            if hours < 0 or hours > MAX_ENTRY_HOURS:
                errors.append(f"Hours for task {task.task_code} must be between 0 and {MAX_ENTRY_HOURS}")
                continue
            if hours != hours.quantize(HUNDREDTH):
                errors.append(f"Hours for task {task.task_code} allow at most two decimals")
                continue

            total += hours
            validated.append((task, hours.quantize(HUNDREDTH)))

        if not errors and total > self.settings.max_hours_per_week:
            errors.append(
                f"Total hours ({total}) exceed the weekly maximum of {self.settings.max_hours_per_week}"
            )

        if errors:
            raise ValidationFailedError("Invalid timesheet entries", errors=errors)

        return validated

    def summarize(self, validated: list[tuple[TimesheetTask, Decimal]]) -> TimesheetSummary:
        """Project hours split into regular and overtime; leave counted apart."""
        project = sum((hours for task, hours in validated if not task.is_leave), Decimal("0"))
        leave = sum((hours for task, hours in validated if task.is_leave), Decimal("0"))
        regular = min(project, Decimal(self.settings.regular_hours_per_week))
        return TimesheetSummary(
            total_hours=(project + leave).quantize(HUNDREDTH),
            regular_hours=regular.quantize(HUNDREDTH),
            overtime_hours=(project - regular).quantize(HUNDREDTH),
            leave_hours=leave.quantize(HUNDREDTH),
        )

    def _payload(self, week_start_date: date, summary: TimesheetSummary) -> TimesheetPayload:
        return TimesheetPayload(
            year=week_start_date.year,
            month=week_start_date.month,
            week_number=week_start_date.isocalendar()[1],
            summary=summary,
        )

    def _build_entries(
        self,
        request: Request,
        validated: list[tuple[TimesheetTask, Decimal]],
    ) -> list[TimesheetEntry]:
        # Linked by request_id, or through request.entries before the request is added
        week_start, week_end = week_bounds(request.effective_from)
        return [
            TimesheetEntry(
                request_id=request.request_id,
                employee_id=request.requester_id,
                task_id=task.task_id,
                entry_type=task.task_type,
                week_start_date=week_start,
                week_end_date=week_end,
                hours=hours,
            )
            for task, hours in validated
        ]

    def _require_timesheet(self, request_id: int) -> Request:
        request = self.requests.get(request_id)
        if not request.request_type.is_timesheet:
            raise ValidationFailedError(f"Request {request_id} is not a timesheet")
        return request

    def _result(self, request: Request) -> TimesheetResult:
        payload = TimesheetPayload.model_validate(request.payload) if request.payload else None
        summary = payload.summary if payload else TimesheetSummary()
        return TimesheetResult(request=request, entries=list(request.entries), summary=summary)

    # -- submit / adjust ---------------------------------------------------

    def _live_week_request(self, week_start_date: date, exclude_id: Optional[int] = None) -> Optional[Request]:
        query = select(Request).where(
            Request.requester_id == self.actor.employee_id,
            Request.week_start_date == week_start_date,
            Request.status.not_in(CLOSED_WEEK_STATUSES),
        )
        if exclude_id is not None:
            query = query.where(Request.request_id != exclude_id)
        return self.db.execute(query).scalars().first()

    def _release_closed_week(self, week_start_date: date) -> None:
        """
        Make room for a new timesheet.

        A week already holding a pending or approved timesheet is a
        conflict. Rejected and cancelled timesheets stay on record as they
        are, but their entries are removed so the week can be submitted
        again.
        """
        if self._live_week_request(week_start_date) is not None:
            raise ConflictError(f"A timesheet for the week of {week_start_date} already exists")

        # Closed timesheets still hold the (employee, task, week) unique keys
        stray = self.db.execute(
            select(TimesheetEntry)
            .join(Request, TimesheetEntry.request_id == Request.request_id)
            .where(
                TimesheetEntry.employee_id == self.actor.employee_id,
                TimesheetEntry.week_start_date == week_start_date,
            )
        ).scalars().all()

        for entry in stray:
            if entry.request.status not in CLOSED_WEEK_STATUSES:
                raise ConflictError(f"A timesheet for the week of {week_start_date} already exists")
            self.audit.log_delete(entry, context="timesheet resubmit")
            self.db.delete(entry)

        if stray:
            self.db.flush()
            logger.info(
                "Removed %s entries of closed timesheet(s) for employee %s, week %s",
                len(stray), self.actor.employee_id, week_start_date,
            )

    def submit(
        self,
        week_start_date: date,
        entries: Iterable[Any],
        reason: Optional[str] = None,
    ) -> TimesheetResult:
        """
        Submit the actor's timesheet for a week.

        Raises:
            ValidationFailedError: not a Monday, or any entry invalid
            ConflictError: the week already has a timesheet
        """
        self._validate_week(week_start_date)
        validated = self._validate_entries(entries)
        request_type = self.requests.registry.require_active(TIMESHEET_WEEKLY)

        self._release_closed_week(week_start_date)

        summary = self.summarize(validated)
        week_start, week_end = week_bounds(week_start_date)
        auto_approve = self.settings.auto_approve_admin_timesheets and self.actor.is_admin

        request = self.requests.new_request(
            request_type,
            (reason or "").strip() or f"Timesheet for week of {week_start.isoformat()}",
            self._payload(week_start, summary),
            effective_from=week_start,
            effective_to=week_end,
            week_start_date=week_start,
            auto_approve=auto_approve,
        )
        new_entries = self._build_entries(request, validated)
        request.entries = new_entries

        self.requests.insert_guarded(
            [request],
            f"A timesheet for the week of {week_start_date} already exists",
        )

        self.audit.log_insert(request, context="timesheet submit")
        for entry in new_entries:
            self.audit.log_insert(entry, context="timesheet submit")

        logger.info(
            "Timesheet %s submitted by employee %s for week %s (%s entries, %s)",
            request.request_id, self.actor.employee_id, week_start, len(new_entries), request.status,
        )
        return TimesheetResult(request=request, entries=new_entries, summary=summary)

    def adjust(
        self,
        request_id: int,
        entries: Iterable[Any],
        reason: Optional[str] = None,
    ) -> TimesheetResult:
        """
        Replace the entry set of a PENDING or REJECTED timesheet.

        Status is left as it is: a rejected timesheet stays rejected with
        the corrected entries on record, and is resubmitted for review with
        submit(), which releases the week. The reason can only change while
        the timesheet is pending.
        """
        request = self._require_timesheet(request_id)
        if request.requester_id != self.actor.employee_id:
            raise ForbiddenError("Only the owner can adjust this timesheet")
        if request.status not in [s.value for s in ADJUSTABLE_STATUSES]:
            raise InvalidStateError(
                f"Timesheet {request_id} is {request.status.lower()}; only pending or rejected timesheets can be adjusted"
            )

        if (
            not request.is_pending
            and self._live_week_request(request.week_start_date, exclude_id=request.request_id) is not None
        ):
            raise ConflictError(
                f"Timesheet {request_id} has been superseded by a newer submission for the same week"
            )

        validated = self._validate_entries(entries)
        summary = self.summarize(validated)

        values: dict[str, Any] = {
            "payload": dump_payload(self._payload(request.effective_from, summary)),
        }
        if reason is not None and reason.strip():
            if not request.is_pending:
                raise ValidationFailedError("The reason can only be changed while the timesheet is pending")
            values["reason"] = reason.strip()

        request = self.requests.update_if_status(
            request,
            ADJUSTABLE_STATUSES,
            values,
            context="timesheet adjust",
        )

        old_entries = list(request.entries)
        for entry in old_entries:
            self.audit.log_delete(entry, context="timesheet adjust")
        request.entries.clear()
        # Deletes must reach the database before inserts reuse the same keys
        self.db.flush()

        new_entries = self._build_entries(request, validated)
        self.requests.insert_guarded(new_entries, "Timesheet entries conflict with another submission")
        self.db.expire(request, ["entries"])
        for entry in new_entries:
            self.audit.log_insert(entry, context="timesheet adjust")

        logger.info(
            "Timesheet %s adjusted by employee %s: %s entries replaced by %s",
            request.request_id, self.actor.employee_id, len(old_entries), len(new_entries),
        )
        return TimesheetResult(request=request, entries=new_entries, summary=summary)

    # -- transitions -------------------------------------------------------

    def approve_timesheet(self, request_id: int, comment: Optional[str] = None) -> Request:
        self._require_timesheet(request_id)
        return self.requests.approve(request_id, comment)

    def reject_timesheet(self, request_id: int, reason: Optional[str]) -> Request:
        self._require_timesheet(request_id)
        return self.requests.reject(request_id, reason)

    def cancel_timesheet(self, request_id: int) -> Request:
        self._require_timesheet(request_id)
        return self.requests.cancel(request_id)

    # -- queries -----------------------------------------------------------

    def get_timesheet(self, request_id: int) -> TimesheetResult:
        request = self._require_timesheet(request_id)
        if not self.requests.can_view(request, as_admin=True):
            raise ForbiddenError("You are not allowed to view this timesheet")
        return self._result(request)

    def _timesheet_query(self):
        return (
            select(Request)
            .join(RequestType, Request.request_type_id == RequestType.request_type_id)
            .where(RequestType.category == RequestCategory.TIMESHEET.value)
        )

    def _page(self, query, order_by, page: int, limit: int) -> Page[Request]:
        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()
        items = self.db.execute(
            query.order_by(*order_by).offset((page - 1) * limit).limit(limit)
        ).scalars().unique().all()
        return Page(items=list(items), total=total, page=page, limit=limit)

    def list_my_timesheets(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Page[Request]:
        """The actor's timesheets, newest week first, optionally overlapping a month or year."""
        page, limit = clamp_paging(page, limit)
        query = self._timesheet_query().where(Request.requester_id == self.actor.employee_id)

        if month is not None:
            if not 1 <= month <= 12:
                raise ValidationFailedError("Month must be between 1 and 12")
            year = year or self.requests.today().year
            period_start = date(year, month, 1)
            period_end = date(year, month, monthrange(year, month)[1])
        elif year is not None:
            period_start, period_end = date(year, 1, 1), date(year, 12, 31)
        else:
            period_start = period_end = None

        if period_start is not None:
            query = query.where(
                Request.effective_from <= period_end,
                Request.effective_to >= period_start,
            )
        if status:
            query = query.where(Request.status == status.upper())

        return self._page(
            query,
            (Request.effective_from.desc(), Request.request_id.desc()),
            page,
            limit,
        )

    def pending_approvals(
        self,
        approver_id: Optional[int] = None,
        department_id: Optional[int] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> Page[Request]:
        """
        Pending timesheets waiting on an approver.

        Includes requests whose requester reports directly to approver_id
        (one level) or belongs to department_id. With neither given the
        actor is the approver. Managers may only look at their own reports
        and their own department; admins may look anywhere.
        """
        if not self.actor.is_manager:
            raise ForbiddenError("Manager or admin role required")
        if approver_id is None and department_id is None:
            approver_id = self.actor.employee_id
        if not self.actor.is_admin:
            if approver_id is not None and approver_id != self.actor.employee_id:
                raise ForbiddenError("You can only view your own pending approvals")
            if department_id is not None and department_id != self.directory.get_department_of(self.actor.employee_id):
                raise ForbiddenError("You can only view pending approvals of your own department")

        page, limit = clamp_paging(page, limit)

        requester_ids = set()
        if approver_id is not None:
            requester_ids.update(self.directory.direct_report_ids(approver_id))
        if department_id is not None:
            requester_ids.update(self.directory.department_member_ids(department_id))

        query = (
            self._timesheet_query()
            .where(Request.status == RequestStatus.PENDING.value)
            .where(Request.requester_id.in_(requester_ids))
        )
        return self._page(
            query,
            (Request.requested_at.asc(), Request.request_id.asc()),
            page,
            limit,
        )

    # -- task catalog ------------------------------------------------------

    def _require_admin(self, action: str) -> None:
        if not self.actor.is_admin:
            raise ForbiddenError(f"Only admins can {action}")

    def list_tasks(self, active_only: bool = True) -> list[TimesheetTask]:
        """Active tasks for everyone; retired ones are listed for admins only."""
        if not active_only:
            self._require_admin("view inactive tasks")
        query = select(TimesheetTask).order_by(TimesheetTask.task_type, TimesheetTask.task_code)
        if active_only:
            query = query.where(TimesheetTask.is_active == True)
        return list(self.db.execute(query).scalars().all())

    def create_task(
        self,
        task_code: str,
        name: str,
        task_type: str = TaskType.PROJECT.value,
        description: Optional[str] = None,
    ) -> TimesheetTask:
        """
        Add a task to the catalog.

        Raises:
            ForbiddenError: actor is not an admin
            ValidationFailedError: blank code or name, unknown task type
            ConflictError: the task code is taken
        """
        self._require_admin("create tasks")

        code = (task_code or "").strip().upper()
        name = (name or "").strip()
        if not code or not name:
            raise ValidationFailedError("Task code and name are required")
        if task_type not in [t.value for t in TaskType]:
            raise ValidationFailedError(f"Unknown task type '{task_type}'")

        existing = self.db.execute(
            select(TimesheetTask.task_id).where(TimesheetTask.task_code == code)
        ).first()
        if existing is not None:
            raise ConflictError(f"Task code {code} already exists")

        task = TimesheetTask(
            task_code=code,
            name=name,
            task_type=task_type,
            description=(description or "").strip() or None,
            is_active=True,
        )
        self.requests.insert_guarded([task], f"Task code {code} already exists")
        self.audit.log_insert(task, context="task create")

        logger.info("Task %s created by employee %s", code, self.actor.employee_id)
        return task

    def update_task(
        self,
        task_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> TimesheetTask:
        """Rename, describe, retire or reactivate a task. The code never changes."""
        self._require_admin("update tasks")

        task = self.db.get(TimesheetTask, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")

        old_state = self.audit.capture_state(task)
        if name is not None:
            if not name.strip():
                raise ValidationFailedError("Task name cannot be blank")
            task.name = name.strip()
        if description is not None:
            task.description = description.strip() or None
        if is_active is not None:
            task.is_active = is_active

        self.db.flush()
        self.audit.log_update(task, old_state, context="task update")

        logger.info("Task %s updated by employee %s", task.task_code, self.actor.employee_id)
        return task

    def monthly_hours(
        self,
        year: int,
        month: int,
        employee_id: Optional[int] = None,
        status: Optional[str] = RequestStatus.APPROVED.value,
    ) -> Decimal:
        """
        Total hours of entries whose week starts in the month.

        Summed as Decimal in Python so many weekly rows do not drift.
        """
        if not 1 <= month <= 12:
            raise ValidationFailedError("Month must be between 1 and 12")
        employee_id = self.requests.resolve_scope(
            employee_id or self.actor.employee_id,
            as_admin=self.actor.is_admin,
        )

        query = (
            select(TimesheetEntry.hours)
            .join(Request, TimesheetEntry.request_id == Request.request_id)
            .where(
                TimesheetEntry.employee_id == employee_id,
                TimesheetEntry.week_start_date >= date(year, month, 1),
                TimesheetEntry.week_start_date <= date(year, month, monthrange(year, month)[1]),
            )
        )
        if status:
            query = query.where(Request.status == status.upper())

        return sum(
            (Decimal(str(hours)) for hours in self.db.execute(query).scalars().all()),
            Decimal("0.00"),
        ).quantize(HUNDREDTH)
