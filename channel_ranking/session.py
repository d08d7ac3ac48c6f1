"""Session context wiring pagination, cache, prefetch, view specs and export."""

from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path
from typing import Iterable

import httpx
import structlog

from .config import DashboardConfig
from .engine import (
    CsvExporter,
    EntryFetcher,
    FilterSpec,
    Page,
    PageCache,
    Prefetcher,
    RankingEntry,
    SelectionTracker,
    SortField,
    SortSpec,
    SortState,
    SourceAdapter,
    apply_filters,
    apply_sort,
)
from .errors import FetchError


class PaginationController:
    """State machine deciding which page is requested and rendered.

    Every navigation is tagged with the page it targets. When a slower
    completion arrives after the user has already moved on, the page is still
    cached but is not rendered.
    """

    def __init__(
        self,
        fetcher: EntryFetcher,
        cache: PageCache,
        prefetcher: Prefetcher,
        page_size: int,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.cache = cache
        self.prefetcher = prefetcher
        self.page_size = page_size
        self.logger = logger or structlog.get_logger("channel_ranking.pagination")
        self.current_page = 1
        self.total_pages: int | None = None
        self.displayed: Page | None = None

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.total_pages is not None and self.current_page < self.total_pages

    def clamp(self, page_number: int) -> int:
        if self.total_pages is not None:
            page_number = min(page_number, max(self.total_pages, 1))
        return max(1, page_number)

    async def load(self) -> Page | None:
        return await self.go_to(1)

    async def go_to(self, page_number: int) -> Page | None:
        """Navigate to ``page_number`` (clamped); ``None`` means superseded."""

        if self.total_pages is None and page_number > 1:
            await self._discover_total_pages()
        target = self.clamp(page_number)
        if (
            target == self.current_page
            and self.displayed is not None
            and self.displayed.page_number == target
        ):
            return self.displayed
        self.current_page = target
        try:
            page = await self.resolve(target)
        except FetchError as exc:
            if self.current_page != target:
                self.logger.info(
                    "stale_page_failed",
                    page=target,
                    current_page=self.current_page,
                    error=str(exc),
                )
                return None
            raise
        if self.current_page != target:
            self.logger.info(
                "stale_page_discarded", page=target, current_page=self.current_page
            )
            return None
        self.displayed = page
        self.total_pages = page.total_pages
        self.prefetcher.warm(target, page.total_pages)
        return page

    async def next(self) -> Page | None:
        return await self.go_to(self.current_page + 1)

    async def previous(self) -> Page | None:
        return await self.go_to(self.current_page - 1)

    async def retry(self) -> Page | None:
        """Re-request the current page after a failed navigation."""

        return await self.go_to(self.current_page)

    async def _discover_total_pages(self) -> None:
        # The page count is only known from page 1; it lands in the cache.
        first = await self.resolve(1)
        if self.total_pages is None:
            self.total_pages = first.total_pages

    async def resolve(self, page_number: int) -> Page:
        """Return a page from cache, an in-flight prefetch, or the fetcher."""

        cached = self.cache.get(page_number)
        if cached is not None:
            self.logger.debug("page_cache_hit", page=page_number)
            return cached
        pending = self.prefetcher.in_flight(page_number)
        if pending is not None:
            page = await asyncio.shield(pending)
            if page is not None:
                return page
        page = await self.fetcher.fetch(page_number, self.page_size)
        self.cache.put(page_number, page)
        return page

    def reset(self) -> None:
        self.current_page = 1
        self.total_pages = None
        self.displayed = None


class DashboardSession:
    """Owns the page cache and selection set for one browsing session."""

    def __init__(
        self,
        config: DashboardConfig,
        *,
        adapter: SourceAdapter | None = None,
        client: httpx.AsyncClient | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("channel_ranking.session")
        self.cache = PageCache()
        self.selection = SelectionTracker()
        self.filters = FilterSpec()
        self.sort = SortState()
        self.fetcher = EntryFetcher(config.source, adapter=adapter, client=client)
        self.prefetcher = Prefetcher(
            self.fetcher, self.cache, config.page_size, enabled=config.prefetch
        )
        self.controller = PaginationController(
            self.fetcher, self.cache, self.prefetcher, config.page_size
        )
        self.exporter = CsvExporter()

    async def __aenter__(self) -> "DashboardSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.prefetcher.cancel()
        await self.fetcher.aclose()

    # ------------------------------------------------------------------
    # Dataset access
    # ------------------------------------------------------------------
    @property
    def snapshot_key(self) -> str:
        """Identity of the dataset the selection belongs to."""

        for page in (self.controller.displayed, *self.cache.pages()):
            if page is not None and page.snapshot_id:
                return page.snapshot_id
        return self.config.source.endpoint

    async def load_all(self) -> list[RankingEntry]:
        """Pull every page through the cache and return the whole dataset."""

        first = self.controller.displayed or await self.controller.load()
        total_pages = first.total_pages if first is not None else 0
        for page_number in range(1, total_pages + 1):
            await self.controller.resolve(page_number)
        return self.all_entries()

    def all_entries(self) -> list[RankingEntry]:
        seen: dict[str, RankingEntry] = {}
        for page in self.cache.pages():
            for entry in page.items:
                seen.setdefault(entry.id, entry)
        return sorted(seen.values(), key=lambda entry: entry.rank)

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------
    def view(self, entries: Iterable[RankingEntry]) -> list[RankingEntry]:
        return apply_sort(apply_filters(entries, self.filters), self.sort.spec)

    def visible_entries(self) -> list[RankingEntry]:
        page = self.controller.displayed
        if page is None:
            return []
        return self.view(page.items)

    def set_filters(self, spec: FilterSpec) -> None:
        self.filters = spec

    def toggle_sort(self, field: SortField | str) -> SortSpec:
        return self.sort.toggle(field)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select_visible(self) -> int:
        """Replace the selection with the rows currently visible."""

        self.selection.select_all(entry.id for entry in self.visible_entries())
        return self.selection.size()

    def deselect_visible(self) -> None:
        self.selection.select_all([])

    def toggle_all_visible(self) -> bool:
        """Header checkbox: select exactly the visible rows, or nothing.

        Returns the new checkbox state.
        """

        visible = [entry.id for entry in self.visible_entries()]
        if visible and all(self.selection.is_selected(entry_id) for entry_id in visible):
            self.deselect_visible()
            return False
        return self.select_visible() > 0

    def resolve_selection(self) -> list[RankingEntry]:
        entries = [entry for entry in self.all_entries() if entry.id in self.selection]
        unresolved = self.selection.size() - len(entries)
        if unresolved:
            self.logger.warning("selection_unresolved", missing=unresolved)
        return entries

    def export(self) -> bytes:
        return self.exporter.export(self.resolve_selection())

    def save_export(self, output_dir: Path | None = None, day: date | None = None) -> Path:
        return self.exporter.save(
            self.resolve_selection(), output_dir or self.config.outputs_dir, day=day
        )

    def reset(self) -> None:
        """Forget everything, as a full reload would."""

        self.prefetcher.cancel()
        self.cache.clear()
        self.fetcher.forget()
        self.selection.clear()
        self.controller.reset()
        self.filters = FilterSpec()
        self.sort.reset()
        self.logger.info("session_reset")


__all__ = ["DashboardSession", "PaginationController"]
