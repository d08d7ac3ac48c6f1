"""Session-scoped store of fetched pages."""

from __future__ import annotations

from typing import Iterator

from .models import Page


class PageCache:
    """Unbounded page-number keyed cache; last write wins, nothing expires.

    Pages are immutable for the life of a session, so there is no eviction.
    """

    def __init__(self) -> None:
        self._pages: dict[int, Page] = {}

    def get(self, page_number: int) -> Page | None:
        return self._pages.get(page_number)

    def put(self, page_number: int, page: Page) -> None:
        self._pages[page_number] = page

    def clear(self) -> None:
        self._pages.clear()

    def pages(self) -> Iterator[Page]:
        for number in sorted(self._pages):
            yield self._pages[number]

    def __contains__(self, page_number: object) -> bool:
        return page_number in self._pages

    def __len__(self) -> int:
        return len(self._pages)


__all__ = ["PageCache"]
