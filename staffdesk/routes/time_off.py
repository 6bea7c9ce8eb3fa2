# StaffDesk - Time Off Routes

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from staffdesk.database import get_db
from staffdesk.dependencies import get_actor, client_ip, get_clock
from staffdesk.schemas.common import PageOut, page_out
from staffdesk.schemas.requests import CancelIn, RequestOut
from staffdesk.schemas.time_off import TimeOffSubmit, BalanceOut
from staffdesk.services.identity import Actor
from staffdesk.services.time_off import TimeOffService


router = APIRouter(prefix="/time-off", tags=["time-off"])


def get_service(
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
) -> TimeOffService:
    return TimeOffService(db, actor, client_ip(request), clock)


@router.get("/balances", response_model=list[BalanceOut])
def get_leave_balances(
    year: Optional[int] = Query(None),
    service: TimeOffService = Depends(get_service),
    db: Session = Depends(get_db),
):
    """Annual, sick, parental and other leave for the year (default: current)."""
    balances = service.balances(year)
    # Lazily materialized rows
    db.commit()
    return [BalanceOut.from_snapshot(snapshot) for snapshot in balances.values()]


@router.get("/history", response_model=PageOut[RequestOut])
def time_off_history(
    status_filter: Optional[str] = Query(None, alias="status"),
    type_code: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    service: TimeOffService = Depends(get_service),
):
    result = service.history(status=status_filter, type_code=type_code, page=page, limit=limit)
    return page_out(result, RequestOut.from_model)


@router.post("", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def submit_time_off(
    body: TimeOffSubmit,
    service: TimeOffService = Depends(get_service),
    db: Session = Depends(get_db),
):
    created = service.submit(
        body.type_code,
        body.start_date,
        body.end_date,
        body.reason,
        attachment_urls=body.attachment_urls,
    )
    db.commit()
    return RequestOut.from_model(created)


@router.post("/{request_ref}/cancel", response_model=RequestOut)
def cancel_time_off(
    request_ref: str,
    body: Optional[CancelIn] = None,
    service: TimeOffService = Depends(get_service),
    db: Session = Depends(get_db),
):
    """request_ref is the numeric id or the REQ-NNN display id."""
    cancelled = service.cancel(request_ref, comment=body.comment if body else None)
    db.commit()
    return RequestOut.from_model(cancelled)
