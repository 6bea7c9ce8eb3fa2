"""
Tests for session issue, validation and revocation.
"""

from datetime import timedelta

import pytest

from staffdesk.models import UserSession
from staffdesk.models.base import utcnow
from staffdesk.services.auth import AuthService, AuthenticationError
from staffdesk.services.identity import Actor, EmployeeDirectory, resolve_actor
from staffdesk.models.employee import Role


class TestSessions:

    def test_issue_and_validate(self, db, org):
        auth = AuthService(db)
        session = auth.issue_session(org.alice.employee_id, ip_address="10.0.0.1")

        assert len(session.session_token) == 64
        assert auth.validate_session(session.session_token) is org.alice

    def test_unknown_employee(self, db, org):
        with pytest.raises(AuthenticationError):
            AuthService(db).issue_session(9999)

    def test_inactive_employee(self, db, org):
        org.carol.is_active = False
        db.flush()

        with pytest.raises(AuthenticationError):
            AuthService(db).issue_session(org.carol.employee_id)

    def test_expired_session_is_deactivated(self, db, org):
        auth = AuthService(db)
        session = auth.issue_session(org.alice.employee_id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.flush()

        assert auth.validate_session(session.session_token) is None
        assert db.get(UserSession, session.session_id).is_active is False

    def test_logout(self, db, org):
        auth = AuthService(db)
        session = auth.issue_session(org.alice.employee_id)

        assert auth.logout(session.session_token) is True
        assert auth.validate_session(session.session_token) is None
        assert auth.logout("unknown") is False

    def test_logout_all(self, db, org):
        auth = AuthService(db)
        tokens = [auth.issue_session(org.alice.employee_id).session_token for _ in range(3)]
        auth.issue_session(org.bob.employee_id)

        assert auth.logout_all_sessions(org.alice.employee_id) == 3
        db.expire_all()
        assert all(auth.validate_session(token) is None for token in tokens)


class TestIdentity:

    def test_resolve_actor(self, org):
        assert resolve_actor(org.maria) == Actor(org.maria.employee_id, Role.MANAGER)
        assert resolve_actor(org.admin).is_manager
        assert not resolve_actor(org.alice).is_manager

    def test_unknown_role_is_employee(self, org):
        org.carol.role = "intern"

        assert resolve_actor(org.carol).role is Role.EMPLOYEE

    def test_directory(self, db, org):
        directory = EmployeeDirectory(db)

        assert directory.get_manager_of(org.alice.employee_id) == org.maria.employee_id
        assert directory.get_hr_of(org.alice.employee_id) == org.hank.employee_id
        assert directory.get_department_of(org.bob.employee_id) == 10
        assert sorted(directory.direct_report_ids(org.maria.employee_id)) == [
            org.alice.employee_id,
            org.bob.employee_id,
        ]
        assert sorted(directory.department_member_ids(10)) == [
            org.maria.employee_id,
            org.alice.employee_id,
            org.bob.employee_id,
        ]
        assert directory.exists(org.dave.employee_id)
        assert not directory.exists(9999)
