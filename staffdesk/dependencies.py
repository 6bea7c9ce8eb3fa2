# StaffDesk - Authentication Dependencies
# FastAPI dependencies for protecting routes

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from staffdesk.database import get_db
from staffdesk.models.base import utcnow
from staffdesk.models.employee import Employee
from staffdesk.services.auth import AuthService
from staffdesk.services.identity import Actor, resolve_actor


# Cookie name for session token
SESSION_COOKIE_NAME = "staffdesk_session"


def get_session_token(request: Request) -> Optional[str]:
    """
    Extract the session token from the cookie or an Authorization header.

    Returns None if neither is present.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Employee:
    """
    Get the authenticated employee or raise 401.

    Usage:
        @router.get("/requests")
        def list_requests(user: Employee = Depends(get_current_user)):
            ...
    """
    session_token = get_session_token(request)
    employee = None
    if session_token:
        employee = AuthService(db).validate_session(session_token)
        # Persist last-activity / expiry bookkeeping
        db.commit()

    if not employee:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return employee


def get_actor(user: Employee = Depends(get_current_user)) -> Actor:
    return resolve_actor(user)


def require_manager(actor: Actor = Depends(get_actor)) -> Actor:
    """
    Require the current user to be a manager or admin.

    Usage:
        @router.post("/requests/{request_id}/approve")
        def approve(actor: Actor = Depends(require_manager)):
            ...
    """
    if not actor.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Manager access required",
        )
    return actor


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def get_clock():
    """Time source handed to the services; tests override it."""
    return utcnow
