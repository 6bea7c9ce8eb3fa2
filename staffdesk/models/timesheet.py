# StaffDesk - Timesheet Models
# Task catalog and weekly task-hour entries

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    String, Boolean, Integer, Date, Numeric,
    ForeignKey, Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, fk

if TYPE_CHECKING:
    from .request import Request


class TaskType(str, Enum):
    PROJECT = "project"
    LEAVE = "leave"


class TimesheetTask(TimestampMixin, Base):
    """
    Catalog of billable and leave task codes.

    Tasks are referenced by entries, never owned by them. Retire a task by
    setting is_active = False; historic entries keep pointing at it.
    """

    __tablename__ = "timesheet_tasks"

    task_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    task_code: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    task_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskType.PROJECT.value
    )

    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<TimesheetTask {self.task_code} ({self.task_type})>"

    @property
    def is_leave(self) -> bool:
        return self.task_type == TaskType.LEAVE.value


class TimesheetEntry(TimestampMixin, Base):
    """
    Hours logged against one task for one ISO week.

    Every entry hangs off a weekly timesheet Request; all entries of a
    submission share that request and are written in one transaction.
    employee_id is a copy of request.requester_id kept for query speed.

    week_start_date is a Monday and week_end_date the following Sunday.
    hours is fixed-point with two decimals, between 0 and 168.
    """

    __tablename__ = "timesheet_entries"

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "task_id", "week_start_date",
            name="uq_timesheet_entries_employee_task_week"
        ),
        CheckConstraint(
            "hours >= 0 AND hours <= 168",
            name="ck_timesheet_entries_hours"
        ),
        Index("ix_timesheet_entries_employee_week", "employee_id", "week_start_date"),
    )

    entry_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    request_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("requests.request_id"), ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=False
    )

    task_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("timesheet_tasks.task_id")),
        nullable=False,
        index=True
    )

    # Mirrors the task's type at the time of entry
    entry_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskType.PROJECT.value
    )

    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Precision 5,2 allows 0.00 to 999.99; the check constraint caps it at 168
    hours: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False
    )

    # Relationships
    request: Mapped["Request"] = relationship(
        "Request",
        back_populates="entries"
    )

    task: Mapped["TimesheetTask"] = relationship(
        "TimesheetTask",
        lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<TimesheetEntry {self.week_start_date} task={self.task_id} {self.hours}h>"


# Default tasks to seed on initial setup
DEFAULT_TIMESHEET_TASKS = [
    {"task_code": "PROJ-A", "name": "Project A", "task_type": "project", "description": "Client project A"},
    {"task_code": "PROJ-B", "name": "Project B", "task_type": "project", "description": "Client project B"},
    {"task_code": "MEETING", "name": "Meetings", "task_type": "project", "description": "Internal meetings"},
    {"task_code": "TRAINING", "name": "Training", "task_type": "project", "description": "Courses and onboarding"},
    {"task_code": "ADMIN", "name": "Administration", "task_type": "project", "description": "General administration"},
    {"task_code": "LEAVE", "name": "Leave", "task_type": "leave", "description": "Paid or unpaid leave taken during the week"},
    {"task_code": "HOLIDAY", "name": "Public Holiday", "task_type": "leave", "description": "Public holidays"},
]
