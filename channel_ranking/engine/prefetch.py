"""Background warming of the page cache around the displayed page."""

from __future__ import annotations

import asyncio

import structlog

from ..errors import FetchError
from .cache import PageCache
from .fetcher import EntryFetcher
from .models import Page


class Prefetcher:
    """Fetch the neighbours of the current page without blocking the caller.

    Each neighbour is fetched in its own task. A failed prefetch is logged and
    dropped; it never reaches the displayed page.
    """

    def __init__(
        self,
        fetcher: EntryFetcher,
        cache: PageCache,
        page_size: int,
        enabled: bool = True,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self.page_size = page_size
        self.enabled = enabled
        self.logger = logger or structlog.get_logger("channel_ranking.prefetch")
        self._tasks: dict[int, asyncio.Task[Page | None]] = {}

    def warm(self, current_page: int, total_pages: int) -> list[int]:
        """Schedule fetches for ``current_page ± 1``; return the pages scheduled."""

        if not self.enabled:
            return []
        scheduled: list[int] = []
        for neighbour in (current_page - 1, current_page + 1):
            if not 1 <= neighbour <= total_pages:
                continue
            if neighbour in self.cache or neighbour in self._tasks:
                continue
            task = asyncio.get_running_loop().create_task(
                self._prefetch(neighbour), name=f"prefetch-page-{neighbour}"
            )
            self._tasks[neighbour] = task
            task.add_done_callback(lambda _task, page=neighbour: self._tasks.pop(page, None))
            scheduled.append(neighbour)
        if scheduled:
            self.logger.debug("prefetch_scheduled", current_page=current_page, pages=scheduled)
        return scheduled

    def in_flight(self, page_number: int) -> asyncio.Task[Page | None] | None:
        return self._tasks.get(page_number)

    @property
    def pending(self) -> list[int]:
        return sorted(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight prefetch to settle."""

        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    def cancel(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    async def _prefetch(self, page_number: int) -> Page | None:
        try:
            page = await self.fetcher.fetch(page_number, self.page_size)
        except FetchError as exc:
            self.logger.warning("prefetch_failed", page=page_number, error=str(exc))
            return None
        self.cache.put(page_number, page)
        self.logger.debug("prefetch_cached", page=page_number)
        return page


__all__ = ["Prefetcher"]
