from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results plus the total matching the server-side filters."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 0

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


def clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    """Return ``limit`` bounded to ``1..maximum`` with ``default`` for unset."""
    if not limit or limit <= 0:
        return default
    return min(limit, maximum)


def page_window(page: int, limit: int) -> tuple[int, int]:
    """Return ``(offset, limit)`` for a 1-based page number."""
    page = max(page, 1)
    return (page - 1) * limit, limit


def paginate(items: Sequence[T], page: int, limit: int) -> list[T]:
    """Return a slice of items for the given page and limit."""
    if limit <= 0:
        return []
    start, count = page_window(page, limit)
    return list(items[start : start + count])
