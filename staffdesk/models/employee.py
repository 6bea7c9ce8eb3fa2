# StaffDesk - Employee Model
# Directory data the workflow reads: roles and reporting lines

from datetime import datetime
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, Boolean, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, fk, utcnow


class Role(str, Enum):
    """Capability tier used for approval decisions."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class Employee(Base):
    """
    Employee directory row.

    Profile data (addresses, bank accounts, education...) lives in the HR
    profile service; this table only carries what the approval workflow
    needs to scope and authorize requests:

        - role: employee, manager or admin
        - manager_id: direct manager (one level, not transitive)
        - hr_id: HR contact who may also decide on the employee's requests
        - department_id: owning department (department lookup is external)
    """

    __tablename__ = "employees"

    employee_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    username: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.EMPLOYEE.value
    )

    manager_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=True,
        index=True
    )

    hr_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=True
    )

    department_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False
    )

    # Relationships
    manager: Mapped[Optional["Employee"]] = relationship(
        "Employee",
        remote_side=[employee_id],
        foreign_keys=[manager_id],
        back_populates="direct_reports",
    )

    direct_reports: Mapped[List["Employee"]] = relationship(
        "Employee",
        foreign_keys=[manager_id],
        back_populates="manager",
    )

    def __repr__(self) -> str:
        return f"<Employee {self.employee_id} {self.username} ({self.role})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_manager(self) -> bool:
        """Managers and admins can both decide on requests."""
        return self.role in (Role.MANAGER.value, Role.ADMIN.value)
