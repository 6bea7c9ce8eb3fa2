# StaffDesk - Time Off Schemas

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from staffdesk.services.leave_balance import BalanceSnapshot


class TimeOffSubmit(BaseModel):
    type_code: str
    start_date: date
    end_date: date
    reason: str = Field(min_length=1, max_length=1000)
    attachment_urls: list[str] = Field(default_factory=list)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str):
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Reason is required")
        return cleaned

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date > self.end_date:
            raise ValueError("Start date cannot be after end date")
        return self


class BalanceOut(BaseModel):
    balance_type: str
    year: int
    total: Decimal
    used: Decimal
    remaining: Decimal

    @classmethod
    def from_snapshot(cls, snapshot: BalanceSnapshot) -> "BalanceOut":
        return cls(
            balance_type=snapshot.balance_type,
            year=snapshot.year,
            total=snapshot.total,
            used=snapshot.used,
            remaining=snapshot.remaining,
        )
