# StaffDesk - Request Payload Schemas
# One payload document per request category, tagged by "kind"

from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class TimeOffPayload(BaseModel):
    kind: Literal["time-off"] = "time-off"
    # Assigned after insert, e.g. "REQ-042"
    request_display_id: Optional[str] = None
    attachment_urls: list[str] = Field(default_factory=list)
    cancellation_comment: Optional[str] = None

    @field_validator("attachment_urls")
    @classmethod
    def strip_blank_urls(cls, value: list[str]) -> list[str]:
        return [url.strip() for url in value if url and url.strip()]


class TimesheetSummary(BaseModel):
    total_hours: Decimal = Decimal("0.00")
    regular_hours: Decimal = Decimal("0.00")
    overtime_hours: Decimal = Decimal("0.00")
    leave_hours: Decimal = Decimal("0.00")


class TimesheetPayload(BaseModel):
    kind: Literal["timesheet"] = "timesheet"
    year: int
    month: int = Field(ge=1, le=12)
    week_number: int = Field(ge=1, le=53)
    summary: TimesheetSummary = Field(default_factory=TimesheetSummary)


class FieldChange(BaseModel):
    field: str = Field(min_length=1)
    old_value: Optional[str] = None
    new_value: Optional[str] = None


class ProfileChangePayload(BaseModel):
    kind: Literal["profile"] = "profile"
    changes: list[FieldChange] = Field(min_length=1)


class OtherPayload(BaseModel):
    kind: Literal["other"] = "other"
    data: dict[str, Any] = Field(default_factory=dict)


RequestPayload = Annotated[
    Union[TimeOffPayload, TimesheetPayload, ProfileChangePayload, OtherPayload],
    Field(discriminator="kind"),
]

_payload_adapter = TypeAdapter(RequestPayload)


def parse_payload(category: str, raw: Optional[dict[str, Any]]) -> RequestPayload:
    """
    Validate a raw payload for a request of the given category.

    A missing "kind" is filled in from the category; a kind that names a
    different category is refused. Raises ValueError (pydantic's
    ValidationError is one) on any problem.
    """
    data = dict(raw or {})
    kind = data.setdefault("kind", category)
    if kind != category:
        raise ValueError(f"Payload kind '{kind}' does not match request category '{category}'")
    return _payload_adapter.validate_python(data)


def dump_payload(payload: RequestPayload) -> dict[str, Any]:
    """JSON-ready dict for the payload column."""
    return payload.model_dump(mode="json")
