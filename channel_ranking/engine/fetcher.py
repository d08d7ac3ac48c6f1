"""Asynchronous page fetching from the remote ranking source."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from ..config import SourceConfig
from ..errors import MalformedResponseError, NetworkError
from .adapter import SourceAdapter, build_adapter, decode_document
from .models import Page


class EntryFetcher:
    """Request one page of ranked entries and normalise the response.

    The fetcher never touches the page cache; callers decide what to keep.
    """

    def __init__(
        self,
        source: SourceConfig,
        adapter: SourceAdapter | None = None,
        client: httpx.AsyncClient | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.source = source
        self.adapter = adapter or build_adapter(source.adapter)
        self.logger = logger or structlog.get_logger("channel_ranking.fetcher")
        self._documents: dict[str, dict] = {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            timeout=source.timeout,
            headers={"Accept": "application/json", **source.headers},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def forget(self) -> None:
        """Drop remembered whole-ranking documents so the next fetch downloads again."""

        self._documents.clear()

    async def fetch(self, page_number: int, page_size: int) -> Page:
        if self.adapter.single_document:
            document = self._documents.get(self.source.endpoint)
            if document is not None:
                self.logger.debug("document_reused", page=page_number)
                return self._build_page(document, page_number, page_size)
        max_attempts = 1 + self.source.retry_on_fail
        attempt = 1
        last_error: Exception | None = None
        last_status: int | None = None
        while True:
            try:
                response = await self._client.get(
                    self.source.endpoint,
                    params=self.adapter.request_params(page_number, page_size),
                    timeout=self.source.timeout,
                )
            except httpx.HTTPError as exc:
                last_error = exc
                self.logger.warning(
                    "fetch_error",
                    url=self.source.endpoint,
                    page=page_number,
                    attempt=attempt,
                    error=str(exc) or type(exc).__name__,
                )
            else:
                if response.is_success:
                    page = self._parse(response, page_number, page_size)
                    self.logger.info(
                        "page_fetched",
                        page=page.page_number,
                        items=len(page.items),
                        total_pages=page.total_pages,
                        attempt=attempt,
                    )
                    return page
                last_status = response.status_code
                last_error = None
                self.logger.warning(
                    "fetch_bad_status",
                    url=self.source.endpoint,
                    page=page_number,
                    attempt=attempt,
                    status_code=last_status,
                )
                if not self._is_retryable(last_status):
                    raise NetworkError(
                        f"Unexpected status {last_status} for page {page_number}",
                        page=page_number,
                        status_code=last_status,
                    )

            if attempt >= max_attempts:
                break
            if self.source.retry_backoff:
                await asyncio.sleep(self.source.retry_backoff * attempt)
            attempt += 1

        reason = f"status {last_status}" if last_error is None else type(last_error).__name__
        raise NetworkError(
            f"Fetch of page {page_number} failed after {max_attempts} attempts ({reason}): "
            f"{self.source.endpoint}",
            page=page_number,
            status_code=last_status if last_error is None else None,
        ) from last_error

    def _parse(self, response: httpx.Response, page_number: int, page_size: int) -> Page:
        try:
            document = decode_document(response.content)
        except MalformedResponseError as exc:
            exc.page = page_number
            raise
        page = self._build_page(document, page_number, page_size)
        if self.adapter.single_document:
            self._documents[self.source.endpoint] = document
        return page

    def _build_page(self, document: dict, page_number: int, page_size: int) -> Page:
        page = self.adapter.parse(document, page_number, page_size)
        if page.page_number != page_number:
            raise MalformedResponseError(
                f"requested page {page_number} but source answered with page {page.page_number}",
                page=page_number,
            )
        return page

    @staticmethod
    def _is_retryable(status_code: int) -> bool:
        return status_code >= 500 or status_code == 429


__all__ = ["EntryFetcher"]
