"""Immutable domain objects for ranked channels, pages and view specs."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

PLACEHOLDER_ICON = "placeholder://channel-icon"


class RankChangeKind(str, Enum):
    NEW = "new"
    UNCHANGED = "unchanged"
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True, slots=True)
class RankChange:
    """Tagged variant ``New | Unchanged | Up(n) | Down(n)``.

    ``amount`` is only meaningful for ``UP``/``DOWN`` and must then be positive.
    """

    kind: RankChangeKind
    amount: int = 0

    def __post_init__(self) -> None:
        if self.kind in (RankChangeKind.UP, RankChangeKind.DOWN):
            if self.amount <= 0:
                raise ValueError(f"{self.kind.value} rank change requires a positive amount")
        elif self.amount != 0:
            raise ValueError(f"{self.kind.value} rank change carries no amount")

    @classmethod
    def new(cls) -> "RankChange":
        return cls(RankChangeKind.NEW)

    @classmethod
    def unchanged(cls) -> "RankChange":
        return cls(RankChangeKind.UNCHANGED)

    @classmethod
    def up(cls, amount: int) -> "RankChange":
        return cls(RankChangeKind.UP, amount)

    @classmethod
    def down(cls, amount: int) -> "RankChange":
        return cls(RankChangeKind.DOWN, amount)

    @classmethod
    def from_delta(cls, delta: int) -> "RankChange":
        """Positive delta means the channel climbed ``delta`` places."""

        if delta > 0:
            return cls.up(delta)
        if delta < 0:
            return cls.down(-delta)
        return cls.unchanged()

    @property
    def is_new(self) -> bool:
        return self.kind is RankChangeKind.NEW

    def __str__(self) -> str:
        if self.kind is RankChangeKind.NEW:
            return "New"
        if self.kind is RankChangeKind.UNCHANGED:
            return "Unchanged"
        label = "Up" if self.kind is RankChangeKind.UP else "Down"
        return f"{label}({self.amount})"


@dataclass(frozen=True, slots=True)
class RankingEntry:
    """One ranked channel, identified by its URL."""

    id: str
    rank: int
    display_name: str
    subscriber_count: int
    monthly_views: int
    rank_change: RankChange
    icon_ref: str = PLACEHOLDER_ICON

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("entry id cannot be empty")
        if self.rank < 1:
            raise ValueError("rank must be >= 1")
        if self.subscriber_count < 0 or self.monthly_views < 0:
            raise ValueError("counts must be non-negative")


def page_count(total_items: int, page_size: int) -> int:
    return math.ceil(total_items / page_size)


@dataclass(frozen=True, slots=True)
class Page:
    """A fetched slice of the ranking."""

    items: tuple[RankingEntry, ...]
    page_number: int
    total_pages: int
    total_items: int
    page_size: int
    snapshot_id: str | None = None

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.page_number < 1:
            raise ValueError("page_number is 1-indexed")
        if self.total_items < 0:
            raise ValueError("total_items must be non-negative")
        if len(self.items) > self.page_size:
            raise ValueError(
                f"page holds {len(self.items)} items but page_size is {self.page_size}"
            )
        expected = page_count(self.total_items, self.page_size)
        if self.total_pages != expected:
            raise ValueError(
                f"total_pages {self.total_pages} does not match "
                f"ceil({self.total_items} / {self.page_size}) = {expected}"
            )

    def ids(self) -> list[str]:
        return [entry.id for entry in self.items]


@dataclass(frozen=True, slots=True)
class FilterSpec:
    """Numeric range and boolean predicates; ``None`` bounds are unconstrained."""

    subscriber_min: float | None = None
    subscriber_max: float | None = None
    views_min: float | None = None
    views_max: float | None = None
    new_only: bool = False

    def __post_init__(self) -> None:
        for name in ("subscriber_min", "subscriber_max", "views_min", "views_max"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def is_empty(self) -> bool:
        return self == FilterSpec()


class SortField(str, Enum):
    RANK = "rank"
    SUBSCRIBER_COUNT = "subscriber_count"
    MONTHLY_VIEWS = "monthly_views"


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"

    def flipped(self) -> "SortDirection":
        if self is SortDirection.ASCENDING:
            return SortDirection.DESCENDING
        return SortDirection.ASCENDING


@dataclass(frozen=True, slots=True)
class SortSpec:
    field: SortField = SortField.RANK
    direction: SortDirection = SortDirection.ASCENDING


__all__ = [
    "FilterSpec",
    "PLACEHOLDER_ICON",
    "Page",
    "RankChange",
    "RankChangeKind",
    "RankingEntry",
    "SortDirection",
    "SortField",
    "SortSpec",
    "page_count",
]
