# StaffDesk - Identity and Directory
# Who is acting, and how employees relate to each other

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from staffdesk.models.employee import Employee, Role


@dataclass(frozen=True)
class Actor:
    """
    The employee on whose behalf a service call runs.

    Built from an already-authenticated directory row; services trust it.
    """

    employee_id: int
    role: Role = Role.EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_manager(self) -> bool:
        """Managers and admins both have manager capability."""
        return self.role in (Role.MANAGER, Role.ADMIN)


def resolve_actor(employee: Employee) -> Actor:
    """Map a directory row to an Actor. Unknown role strings fall back to employee."""
    try:
        role = Role(employee.role)
    except ValueError:
        role = Role.EMPLOYEE
    return Actor(employee_id=employee.employee_id, role=role)


class EmployeeDirectory:
    """
    Read-only view of reporting lines.

    Usage:
        directory = EmployeeDirectory(db)
        manager_id = directory.get_manager_of(42)
        team = directory.direct_report_ids(manager_id)
    """

    def __init__(self, db: Session):
        self.db = db

    def exists(self, employee_id: int) -> bool:
        return self.db.execute(
            select(Employee.employee_id).where(Employee.employee_id == employee_id)
        ).scalar_one_or_none() is not None

    def get_manager_of(self, employee_id: int) -> Optional[int]:
        return self.db.execute(
            select(Employee.manager_id).where(Employee.employee_id == employee_id)
        ).scalar_one_or_none()

    def get_hr_of(self, employee_id: int) -> Optional[int]:
        return self.db.execute(
            select(Employee.hr_id).where(Employee.employee_id == employee_id)
        ).scalar_one_or_none()

    def get_department_of(self, employee_id: int) -> Optional[int]:
        return self.db.execute(
            select(Employee.department_id).where(Employee.employee_id == employee_id)
        ).scalar_one_or_none()

    def direct_report_ids(self, manager_id: int) -> list[int]:
        """One level only; reports of reports are not included."""
        return list(self.db.execute(
            select(Employee.employee_id)
            .where(Employee.manager_id == manager_id)
            .where(Employee.is_active == True)
        ).scalars().all())

    def department_member_ids(self, department_id: int) -> list[int]:
        return list(self.db.execute(
            select(Employee.employee_id)
            .where(Employee.department_id == department_id)
            .where(Employee.is_active == True)
        ).scalars().all())
