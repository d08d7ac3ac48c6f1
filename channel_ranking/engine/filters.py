"""Client-side filtering of ranking entries."""

from __future__ import annotations

import math
from typing import Iterable

from .models import FilterSpec, RankingEntry


def _within(value: int, low: float | None, high: float | None) -> bool:
    lower = 0 if low is None else low
    upper = math.inf if high is None else high
    return lower <= value <= upper


def matches(entry: RankingEntry, spec: FilterSpec) -> bool:
    """True when ``entry`` satisfies every predicate of ``spec``."""

    return (
        _within(entry.subscriber_count, spec.subscriber_min, spec.subscriber_max)
        and _within(entry.monthly_views, spec.views_min, spec.views_max)
        and (not spec.new_only or entry.rank_change.is_new)
    )


def apply_filters(entries: Iterable[RankingEntry], spec: FilterSpec) -> list[RankingEntry]:
    """Return the entries passing ``spec``, keeping their order."""

    return [entry for entry in entries if matches(entry, spec)]


__all__ = ["apply_filters", "matches"]
