# StaffDesk - Authentication Service
# Session issue, validation and revocation

from datetime import timedelta
from typing import Optional
import logging
import secrets

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from staffdesk.config import get_settings
from staffdesk.models.base import utcnow
from staffdesk.models.employee import Employee
from staffdesk.models.user_session import UserSession


logger = logging.getLogger(__name__)

settings = get_settings()


class AuthenticationError(Exception):
    """Raised when a session cannot be issued."""
    pass


class AuthService:
    """
    Session management for the API.

    Credentials are checked by the upstream identity provider; this service
    only turns a vouched-for employee into a session token and back.

    Usage:
        auth = AuthService(db)

        session = auth.issue_session(employee_id)
        employee = auth.validate_session(session.session_token)
        auth.logout(session.session_token)

    Like the other services, it flushes and leaves the commit to the caller.
    """

    def __init__(self, db: Session):
        self.db = db

    def generate_session_token(self) -> str:
        """64-character hex string (256 bits of entropy)."""
        return secrets.token_hex(32)

    def issue_session(
        self,
        employee_id: int,
        ip_address: Optional[str] = None,
        expire_minutes: Optional[int] = None,
    ) -> UserSession:
        """
        Create a session for an active employee.

        Raises:
            AuthenticationError: if the employee is unknown or inactive
        """
        employee = self.db.execute(
            select(Employee).where(Employee.employee_id == employee_id)
        ).scalar_one_or_none()

        if not employee or not employee.is_active:
            raise AuthenticationError("Employee is unknown or inactive")

        minutes = expire_minutes if expire_minutes is not None else settings.session_expire_minutes
        session = UserSession(
            employee_id=employee.employee_id,
            session_token=self.generate_session_token(),
            expires_at=utcnow() + timedelta(minutes=minutes),
            ip_address=ip_address,
        )
        self.db.add(session)
        self.db.flush()

        logger.info("Issued session %s for employee %s", session.session_id, employee_id)
        return session

    def validate_session(self, session_token: str) -> Optional[Employee]:
        """Return the session's employee, or None if the token is unknown, expired or revoked."""
        session = self.db.execute(
            select(UserSession)
            .where(UserSession.session_token == session_token)
            .where(UserSession.is_active == True)
        ).scalar_one_or_none()

        if not session:
            return None

        if session.is_expired:
            session.is_active = False
            self.db.flush()
            return None

        employee = self.db.execute(
            select(Employee)
            .where(Employee.employee_id == session.employee_id)
            .where(Employee.is_active == True)
        ).scalar_one_or_none()

        if not employee:
            return None

        session.last_activity_at = utcnow()
        self.db.flush()
        return employee

    def logout(self, session_token: str) -> bool:
        """Revoke a session. Returns False when the token is unknown."""
        session = self.db.execute(
            select(UserSession).where(UserSession.session_token == session_token)
        ).scalar_one_or_none()

        if not session:
            return False

        session.is_active = False
        session.logged_out_at = utcnow()
        self.db.flush()
        return True

    def logout_all_sessions(self, employee_id: int) -> int:
        """Revoke every active session of an employee. Returns how many were revoked."""
        result = self.db.execute(
            update(UserSession)
            .where(UserSession.employee_id == employee_id)
            .where(UserSession.is_active == True)
            .values(is_active=False, logged_out_at=utcnow())
        )
        return result.rowcount
