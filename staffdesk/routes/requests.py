# StaffDesk - Request Routes
# Generic request workflow: create, patch, cancel, approve, reject, list

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from staffdesk.database import get_db
from staffdesk.dependencies import get_actor, require_manager, client_ip, get_clock
from staffdesk.schemas.common import PageOut, page_out
from staffdesk.schemas.requests import (
    RequestCreate,
    RequestUpdate,
    ApproveIn,
    RejectIn,
    CancelIn,
    RequestOut,
    RequestSummaryOut,
)
from staffdesk.services.identity import Actor
from staffdesk.services.requests import RequestService, RequestFilter


router = APIRouter(prefix="/requests", tags=["requests"])


def get_service(
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
) -> RequestService:
    return RequestService(db, actor, client_ip(request), clock)


@router.get("", response_model=PageOut[RequestOut])
def list_requests(
    employee_id: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    type_code: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    scope: Literal["mine", "all"] = Query("mine", description="'all' is for admins"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    service: RequestService = Depends(get_service),
):
    """Requests, newest first."""
    result = service.list(
        RequestFilter(
            employee_id=employee_id,
            status=status_filter,
            type_code=type_code,
            category=category,
            date_from=date_from,
            date_to=date_to,
        ),
        page=page,
        limit=limit,
        as_admin=scope == "all",
    )
    return page_out(result, RequestOut.from_model)


@router.get("/summary", response_model=RequestSummaryOut)
def request_summary(
    employee_id: Optional[int] = Query(None),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    type_code: Optional[str] = Query(None),
    scope: Literal["mine", "all"] = Query("mine"),
    service: RequestService = Depends(get_service),
):
    summary = service.summary(
        employee_id=employee_id,
        month=month,
        type_code=type_code,
        as_admin=scope == "all",
    )
    return RequestSummaryOut(total=summary.total, by_status=summary.by_status, by_type=summary.by_type)


@router.get("/{request_id}", response_model=RequestOut)
def get_request(
    request_id: int,
    service: RequestService = Depends(get_service),
):
    return RequestOut.from_model(service.get_visible(request_id, as_admin=True))


@router.post("", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def create_request(
    body: RequestCreate,
    service: RequestService = Depends(get_service),
    db: Session = Depends(get_db),
):
    created = service.create(
        body.type_code,
        effective_from=body.effective_from,
        effective_to=body.effective_to,
        reason=body.reason,
        payload=body.payload,
    )
    db.commit()
    return RequestOut.from_model(created)


@router.patch("/{request_id}", response_model=RequestOut)
def update_request(
    request_id: int,
    body: RequestUpdate,
    service: RequestService = Depends(get_service),
    db: Session = Depends(get_db),
):
    updated = service.update(request_id, body.model_dump(exclude_unset=True))
    db.commit()
    return RequestOut.from_model(updated)


@router.post("/{request_id}/cancel", response_model=RequestOut)
def cancel_request(
    request_id: int,
    body: Optional[CancelIn] = None,
    service: RequestService = Depends(get_service),
    db: Session = Depends(get_db),
):
    cancelled = service.cancel(request_id, comment=body.comment if body else None)
    db.commit()
    return RequestOut.from_model(cancelled)


@router.post("/{request_id}/approve", response_model=RequestOut)
def approve_request(
    request_id: int,
    body: Optional[ApproveIn] = None,
    _manager: Actor = Depends(require_manager),
    service: RequestService = Depends(get_service),
    db: Session = Depends(get_db),
):
    approved = service.approve(request_id, comment=body.comment if body else None)
    db.commit()
    return RequestOut.from_model(approved)


@router.post("/{request_id}/reject", response_model=RequestOut)
def reject_request(
    request_id: int,
    body: RejectIn,
    _manager: Actor = Depends(require_manager),
    service: RequestService = Depends(get_service),
    db: Session = Depends(get_db),
):
    rejected = service.reject(request_id, body.reason)
    db.commit()
    return RequestOut.from_model(rejected)
