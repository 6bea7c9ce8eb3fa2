# StaffDesk - Timesheet Routes
# Weekly timesheet submission, adjustment and approval

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from staffdesk.database import get_db
from staffdesk.dependencies import get_actor, require_manager, client_ip, get_clock
from staffdesk.schemas.common import PageOut, page_out
from staffdesk.schemas.requests import ApproveIn, RejectIn, RequestOut
from staffdesk.schemas.timesheets import (
    TaskOut,
    TaskCreate,
    TaskUpdate,
    TimesheetSubmit,
    TimesheetAdjust,
    TimesheetOut,
    MonthlyHoursOut,
)
from staffdesk.services.identity import Actor
from staffdesk.services.timesheets import TimesheetService


router = APIRouter(prefix="/timesheets", tags=["timesheets"])


def get_service(
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
) -> TimesheetService:
    return TimesheetService(db, actor, client_ip(request), clock)


@router.get("/tasks", response_model=list[TaskOut])
def list_tasks(
    include_inactive: bool = Query(False, description="Admins only"),
    service: TimesheetService = Depends(get_service),
):
    return service.list_tasks(active_only=not include_inactive)


@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreate,
    service: TimesheetService = Depends(get_service),
    db: Session = Depends(get_db),
):
    task = service.create_task(body.task_code, body.name, body.task_type.value, body.description)
    db.commit()
    return task


@router.patch("/tasks/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    body: TaskUpdate,
    service: TimesheetService = Depends(get_service),
    db: Session = Depends(get_db),
):
    task = service.update_task(
        task_id,
        name=body.name,
        description=body.description,
        is_active=body.is_active,
    )
    db.commit()
    return task


@router.post("", response_model=TimesheetOut, status_code=status.HTTP_201_CREATED)
def submit_timesheet(
    body: TimesheetSubmit,
    service: TimesheetService = Depends(get_service),
    db: Session = Depends(get_db),
):
    result = service.submit(body.week_start_date, body.entries, reason=body.reason)
    db.commit()
    return TimesheetOut.from_result(result)


@router.get("/mine", response_model=PageOut[RequestOut])
def list_my_timesheets(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    service: TimesheetService = Depends(get_service),
):
    result = service.list_my_timesheets(year=year, month=month, status=status_filter, page=page, limit=limit)
    return page_out(result, RequestOut.from_model)


@router.get("/pending-approvals", response_model=PageOut[RequestOut])
def list_pending_approvals(
    approver_id: Optional[int] = Query(None),
    department_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    _manager: Actor = Depends(require_manager),
    service: TimesheetService = Depends(get_service),
):
    result = service.pending_approvals(
        approver_id=approver_id,
        department_id=department_id,
        page=page,
        limit=limit,
    )
    return page_out(result, RequestOut.from_model)


@router.get("/monthly-hours", response_model=MonthlyHoursOut)
def monthly_hours(
    year: int = Query(...),
    month: int = Query(..., ge=1, le=12),
    employee_id: Optional[int] = Query(None),
    status_filter: Optional[str] = Query("APPROVED", alias="status"),
    actor: Actor = Depends(get_actor),
    service: TimesheetService = Depends(get_service),
):
    total = service.monthly_hours(year, month, employee_id=employee_id, status=status_filter)
    return MonthlyHoursOut(
        employee_id=employee_id or actor.employee_id,
        year=year,
        month=month,
        status=status_filter,
        total_hours=total,
    )


@router.get("/{request_id}", response_model=TimesheetOut)
def get_timesheet(
    request_id: int,
    service: TimesheetService = Depends(get_service),
):
    return TimesheetOut.from_result(service.get_timesheet(request_id))


@router.put("/{request_id}", response_model=TimesheetOut)
def adjust_timesheet(
    request_id: int,
    body: TimesheetAdjust,
    service: TimesheetService = Depends(get_service),
    db: Session = Depends(get_db),
):
    result = service.adjust(request_id, body.entries, reason=body.reason)
    db.commit()
    return TimesheetOut.from_result(result)


@router.post("/{request_id}/approve", response_model=RequestOut)
def approve_timesheet(
    request_id: int,
    body: Optional[ApproveIn] = None,
    _manager: Actor = Depends(require_manager),
    service: TimesheetService = Depends(get_service),
    db: Session = Depends(get_db),
):
    approved = service.approve_timesheet(request_id, comment=body.comment if body else None)
    db.commit()
    return RequestOut.from_model(approved)


@router.post("/{request_id}/reject", response_model=RequestOut)
def reject_timesheet(
    request_id: int,
    body: RejectIn,
    _manager: Actor = Depends(require_manager),
    service: TimesheetService = Depends(get_service),
    db: Session = Depends(get_db),
):
    rejected = service.reject_timesheet(request_id, body.reason)
    db.commit()
    return RequestOut.from_model(rejected)


@router.post("/{request_id}/cancel", response_model=RequestOut)
def cancel_timesheet(
    request_id: int,
    service: TimesheetService = Depends(get_service),
    db: Session = Depends(get_db),
):
    cancelled = service.cancel_timesheet(request_id)
    db.commit()
    return RequestOut.from_model(cancelled)
