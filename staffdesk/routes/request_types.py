# StaffDesk - Request Type Routes

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from staffdesk.database import get_db
from staffdesk.dependencies import get_actor
from staffdesk.schemas.requests import RequestTypeOut
from staffdesk.services.identity import Actor
from staffdesk.services.request_types import RequestTypeRegistry


router = APIRouter(prefix="/request-types", tags=["request-types"])


@router.get("", response_model=list[RequestTypeOut])
def list_request_types(
    include_inactive: bool = Query(False, description="Admins only"),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Active request types ordered by category and name."""
    registry = RequestTypeRegistry(db)
    if include_inactive:
        if not actor.is_admin:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
        return registry.list_all()
    return registry.list_active()


@router.get("/{code}", response_model=RequestTypeOut)
def get_request_type(
    code: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    request_type = RequestTypeRegistry(db).get_by_code(code)
    if request_type is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request type not found")
    return request_type
