import math
from dataclasses import dataclass
from typing import Optional, Union

from app.models.schemas import ListFilterMode

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50


@dataclass(frozen=True)
class MineFilter:
    """The requester's own generations, any status."""

    email: str


@dataclass(frozen=True)
class PublishedFilter:
    """Published, completed generations from any owner."""


@dataclass(frozen=True)
class AllFilter:
    """The requester's own generations plus every published, completed one."""

    email: str


GenerationFilter = Union[MineFilter, PublishedFilter, AllFilter]


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def pages_for(self, total: int) -> int:
        return math.ceil(total / self.limit) if total else 0


def parse_filter_mode(value: Optional[str]) -> ListFilterMode:
    try:
        return ListFilterMode((value or "").strip().lower())
    except ValueError:
        return ListFilterMode.ALL


def build_filter(mode: ListFilterMode, email: str) -> GenerationFilter:
    if mode == ListFilterMode.MINE:
        return MineFilter(email=email)
    if mode == ListFilterMode.PUBLISHED:
        return PublishedFilter()
    return AllFilter(email=email)


def page_request(page: Optional[int], limit: Optional[int]) -> PageRequest:
    """Clamp user-supplied paging to page >= 1 and 1 <= limit <= 50."""
    page = DEFAULT_PAGE if page is None else max(1, page)
    limit = DEFAULT_LIMIT if limit is None else min(MAX_LIMIT, max(1, limit))
    return PageRequest(page=page, limit=limit)
