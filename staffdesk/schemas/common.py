# StaffDesk - Shared API Schemas

from typing import Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class PageOut(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int


class ErrorOut(BaseModel):
    error: str
    detail: str


def page_out(page, convert) -> dict:
    """Turn a services Page into PageOut fields, converting each item."""
    return {
        "items": [convert(item) for item in page.items],
        "total": page.total,
        "page": page.page,
        "limit": page.limit,
        "total_pages": page.total_pages,
    }
