# StaffDesk - Request Schemas

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from staffdesk.models.request import Request
from staffdesk.models.request_type import RequestType


class RequestTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_type_id: int
    code: str
    name: str
    category: str
    description: Optional[str] = None
    requires_approval: bool
    is_active: bool


class RequestCreate(BaseModel):
    type_code: str
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    reason: str = Field(min_length=1, max_length=1000)
    payload: Optional[dict[str, Any]] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str):
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Reason is required")
        return cleaned

    @model_validator(mode="after")
    def validate_dates(self):
        if self.effective_from and self.effective_to and self.effective_from > self.effective_to:
            raise ValueError("Start date cannot be after end date")
        return self


class RequestUpdate(BaseModel):
    """Only the fields sent are changed."""

    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    reason: Optional[str] = Field(default=None, max_length=1000)
    payload: Optional[dict[str, Any]] = None


class ApproveIn(BaseModel):
    comment: Optional[str] = Field(default=None, max_length=1000)


class RejectIn(BaseModel):
    reason: str = Field(max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str):
        cleaned = value.strip()
        if len(cleaned) < 10:
            raise ValueError("Rejection reason must be at least 10 characters")
        return cleaned


class CancelIn(BaseModel):
    comment: Optional[str] = Field(default=None, max_length=1000)


class RequestOut(BaseModel):
    request_id: int
    display_id: Optional[str] = None
    type_code: str
    category: str
    requester_id: int
    approver_id: Optional[int] = None
    status: str
    requested_at: datetime
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    duration_days: Optional[int] = None
    reason: str
    payload: Optional[dict[str, Any]] = None
    approval_comment: Optional[str] = None
    rejection_reason: Optional[str] = None
    decided_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, request: Request) -> "RequestOut":
        request_type: RequestType = request.request_type
        return cls(
            request_id=request.request_id,
            display_id=request.display_id,
            type_code=request_type.code,
            category=request_type.category,
            requester_id=request.requester_id,
            approver_id=request.approver_id,
            status=request.status,
            requested_at=request.requested_at,
            effective_from=request.effective_from,
            effective_to=request.effective_to,
            duration_days=request.duration_days,
            reason=request.reason,
            payload=request.payload,
            approval_comment=request.approval_comment,
            rejection_reason=request.rejection_reason,
            decided_at=request.decided_at,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )


class RequestSummaryOut(BaseModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
