from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    rows: list[T]
    page: int
    per_page: int
    total_rows: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_rows / self.per_page)) if self.per_page else 1

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(rows: Sequence[T], page: int, per_page: int) -> Page[T]:
    """Slice `rows` into 1-based pages; out of range pages are clamped."""
    total_pages = max(1, math.ceil(len(rows) / per_page))
    page = min(max(1, int(page)), total_pages)
    start = (page - 1) * per_page
    return Page(rows=list(rows[start:start + per_page]), page=page, per_page=per_page, total_rows=len(rows))
