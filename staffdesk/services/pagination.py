# StaffDesk - Pagination helpers

import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from staffdesk.config import get_settings


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


def clamp_paging(page: int, limit: int) -> tuple[int, int]:
    """1-based page, limit between 1 and the configured maximum."""
    settings = get_settings()
    page = max(page or 1, 1)
    if not limit or limit < 1:
        limit = settings.default_page_limit
    return page, min(limit, settings.max_page_limit)
