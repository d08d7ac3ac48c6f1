"""Ordering of ranking entries and the column-header sort toggle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .models import RankingEntry, SortDirection, SortField, SortSpec


def _sort_key(spec: SortSpec):
    attribute = spec.field.value
    sign = -1 if spec.direction is SortDirection.DESCENDING else 1

    # Only the primary key flips; ties always fall back to ascending rank.
    def key(entry: RankingEntry) -> tuple[int, int]:
        return sign * getattr(entry, attribute), entry.rank

    return key


def apply_sort(entries: Iterable[RankingEntry], spec: SortSpec) -> list[RankingEntry]:
    """Return a new list ordered by ``spec`` with a deterministic rank tie-break."""

    return sorted(entries, key=_sort_key(spec))


@dataclass
class SortState:
    """Current sort column and direction as driven by header clicks.

    Re-selecting the active field flips its direction. Picking another field
    starts it descending (largest first), while the initial rank order is
    ascending.
    """

    spec: SortSpec = field(default_factory=SortSpec)

    def toggle(self, sort_field: SortField | str) -> SortSpec:
        sort_field = SortField(sort_field)
        if sort_field is self.spec.field:
            self.spec = SortSpec(sort_field, self.spec.direction.flipped())
        else:
            self.spec = SortSpec(sort_field, SortDirection.DESCENDING)
        return self.spec

    def reset(self) -> None:
        self.spec = SortSpec()


__all__ = ["SortState", "apply_sort"]
