# StaffDesk - Timesheet Schemas

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from staffdesk.models.timesheet import TimesheetEntry, TaskType
from staffdesk.schemas.payloads import TimesheetSummary
from staffdesk.schemas.requests import RequestOut
from staffdesk.services.timesheets import TimesheetResult


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task_id: int
    task_code: str
    name: str
    task_type: str
    description: Optional[str] = None
    is_active: bool


class TaskCreate(BaseModel):
    task_code: str = Field(min_length=1, max_length=30)
    name: str = Field(min_length=1, max_length=100)
    task_type: TaskType = TaskType.PROJECT
    description: Optional[str] = Field(default=None, max_length=500)


class TaskUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class TimesheetEntryIn(BaseModel):
    task_id: int
    hours: Decimal = Field(ge=0, le=168)


class TimesheetSubmit(BaseModel):
    week_start_date: date
    entries: list[TimesheetEntryIn] = Field(min_length=1)
    reason: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("week_start_date")
    @classmethod
    def validate_monday(cls, value: date):
        if value.weekday() != 0:
            raise ValueError("Week start date must be a Monday")
        return value


class TimesheetAdjust(BaseModel):
    entries: list[TimesheetEntryIn] = Field(min_length=1)
    reason: Optional[str] = Field(default=None, max_length=1000)


class TimesheetEntryOut(BaseModel):
    entry_id: int
    task_id: int
    task_code: Optional[str] = None
    entry_type: str
    week_start_date: date
    week_end_date: date
    hours: Decimal

    @classmethod
    def from_model(cls, entry: TimesheetEntry) -> "TimesheetEntryOut":
        return cls(
            entry_id=entry.entry_id,
            task_id=entry.task_id,
            task_code=entry.task.task_code if entry.task else None,
            entry_type=entry.entry_type,
            week_start_date=entry.week_start_date,
            week_end_date=entry.week_end_date,
            hours=entry.hours,
        )


class TimesheetOut(BaseModel):
    request: RequestOut
    week_start_date: date
    week_end_date: date
    entries: list[TimesheetEntryOut]
    summary: TimesheetSummary

    @classmethod
    def from_result(cls, result: TimesheetResult) -> "TimesheetOut":
        return cls(
            request=RequestOut.from_model(result.request),
            week_start_date=result.week_start_date,
            week_end_date=result.week_end_date,
            entries=[TimesheetEntryOut.from_model(entry) for entry in result.entries],
            summary=result.summary,
        )


class MonthlyHoursOut(BaseModel):
    employee_id: int
    year: int
    month: int
    status: Optional[str] = None
    total_hours: Decimal
