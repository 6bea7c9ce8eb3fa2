"""
Pytest fixtures for the StaffDesk test suite.

Provides:
- An in-memory SQLite database per test, schema built from the models
- Seeded request types, timesheet tasks and a small org chart
- A fixed clock so date rules ("no past start dates") are deterministic
- Service factories and an API client wired to the same session

Org chart:

    admin  (admin)
    maria  (manager)   manages alice and bob, department 10
    hank   (manager)   HR contact for alice and bob
    alice  (employee)  department 10
    bob    (employee)  department 10
    carol  (employee)  department 20, no manager
    dave   (manager)   no direct reports
"""

import os

# Settings are read at import time; point them at SQLite before anything loads
os.environ["STAFFDESK_DB_URL"] = "sqlite://"

from datetime import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from staffdesk.database import build_engine, init_db, drop_db
from staffdesk.models import (
    Employee,
    RequestType,
    TimesheetTask,
    DEFAULT_REQUEST_TYPES,
    DEFAULT_TIMESHEET_TASKS,
)
from staffdesk.services.identity import resolve_actor
from staffdesk.services.requests import RequestService
from staffdesk.services.timesheets import TimesheetService, TimesheetEntryInput
from staffdesk.services.time_off import TimeOffService


# Thursday; the Mondays after it are 2025-05-05, 05-12, 05-19, 05-26, 06-02
FIXED_NOW = datetime(2025, 5, 1, 9, 0, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """One session per test; services flush, tests commit when they need to."""
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    _seed_catalogs(session)
    yield session
    session.rollback()
    session.close()


def _seed_catalogs(session) -> None:
    session.add_all(RequestType(**row) for row in DEFAULT_REQUEST_TYPES)
    session.add_all(TimesheetTask(**row) for row in DEFAULT_TIMESHEET_TASKS)
    session.commit()


def _employee(employee_id, username, role, manager_id=None, hr_id=None, department_id=None):
    return Employee(
        employee_id=employee_id,
        username=username,
        first_name=username.capitalize(),
        last_name="Tester",
        email=f"{username}@example.com",
        role=role,
        manager_id=manager_id,
        hr_id=hr_id,
        department_id=department_id,
    )


@pytest.fixture
def org(db):
    """The org chart from the module docstring, committed."""
    admin = _employee(1, "admin", "admin")
    maria = _employee(2, "maria", "manager", department_id=10)
    hank = _employee(3, "hank", "manager", department_id=30)
    dave = _employee(7, "dave", "manager", department_id=20)
    db.add_all([admin, maria, hank, dave])
    db.flush()

    alice = _employee(4, "alice", "employee", manager_id=2, hr_id=3, department_id=10)
    bob = _employee(5, "bob", "employee", manager_id=2, hr_id=3, department_id=10)
    carol = _employee(6, "carol", "employee", department_id=20)
    db.add_all([alice, bob, carol])
    db.commit()

    return SimpleNamespace(
        admin=admin, maria=maria, hank=hank, dave=dave,
        alice=alice, bob=bob, carol=carol,
    )


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def request_service(db):
    """request_service(employee) -> RequestService acting as that employee."""
    def make(employee):
        return RequestService(db, resolve_actor(employee), "127.0.0.1", fixed_clock)
    return make


@pytest.fixture
def timesheet_service(db):
    def make(employee):
        return TimesheetService(db, resolve_actor(employee), "127.0.0.1", fixed_clock)
    return make


@pytest.fixture
def time_off_service(db):
    def make(employee):
        return TimeOffService(db, resolve_actor(employee), "127.0.0.1", fixed_clock)
    return make


@pytest.fixture
def task_ids(db):
    """task_code -> task_id for the seeded tasks."""
    return {
        task.task_code: task.task_id
        for task in db.execute(select(TimesheetTask)).scalars().all()
    }


@pytest.fixture
def entries(task_ids):
    """entries(PROJ_A="20", LEAVE="8") -> list of TimesheetEntryInput."""
    def make(**hours_by_code):
        return [
            TimesheetEntryInput(task_id=task_ids[code.replace("_", "-")], hours=hours)
            for code, hours in hours_by_code.items()
        ]
    return make


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def client(db, org):
    """TestClient whose routes share the test session and the fixed clock."""
    from fastapi.testclient import TestClient

    from staffdesk.database import get_db
    from staffdesk.dependencies import get_clock
    from staffdesk.main import app

    def override_get_db():
        try:
            yield db
        finally:
            # Whatever the route did not commit is discarded
            db.rollback()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db):
    """auth_headers(employee) -> Authorization header with a fresh session token."""
    from staffdesk.services.auth import AuthService

    def make(employee):
        session = AuthService(db).issue_session(employee.employee_id)
        db.commit()
        return {"Authorization": f"Bearer {session.session_token}"}
    return make


