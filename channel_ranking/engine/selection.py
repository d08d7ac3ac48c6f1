"""Multi-page selection of ranking entries."""

from __future__ import annotations

from typing import Iterable


class SelectionTracker:
    """Set of selected entry ids, independent of page, filter and sort."""

    def __init__(self, ids: Iterable[str] | None = None) -> None:
        self._ids: set[str] = set(ids or ())

    def toggle(self, entry_id: str) -> bool:
        """Flip the selection of ``entry_id`` and return its new state."""

        if entry_id in self._ids:
            self._ids.discard(entry_id)
            return False
        self._ids.add(entry_id)
        return True

    def select_all(self, ids: Iterable[str]) -> None:
        """Replace the selection with exactly ``ids`` (not a union)."""

        self._ids = set(ids)

    def clear(self) -> None:
        self._ids.clear()

    def is_selected(self, entry_id: str) -> bool:
        return entry_id in self._ids

    def size(self) -> int:
        return len(self._ids)

    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


__all__ = ["SelectionTracker"]
