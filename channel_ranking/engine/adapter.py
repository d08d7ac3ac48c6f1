"""Normalise ranking-source responses into :class:`Page` values.

The remote source has shipped more than one document shape over time, and some
deployments wrap the JSON body inside a JSON string. Everything that knows
about source key names lives here so the rest of the engine only ever sees
``RankingEntry``/``Page``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Protocol

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field

from ..errors import MalformedResponseError
from .models import PLACEHOLDER_ICON, Page, RankChange, RankingEntry, page_count

MAX_DECODE_DEPTH = 3
ENVELOPE_KEYS = ("body", "payload", "data")
SNAPSHOT_KEYS = ("snapshotId", "snapshot_id", "generatedAt", "generated_at")

_UNCHANGED_TAGS = {"unchanged", "same", "none", "stay", "=", "0"}
_DELTA_PATTERN = re.compile(r"^(?P<tag>up|down|\+|-)\s*\(?\s*(?P<amount>\d+)\s*\)?$")


def _loads(text: str | bytes) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise MalformedResponseError(f"response body is not valid JSON: {exc}") from exc


def _string_envelope(document: Mapping[str, Any]) -> str | None:
    if "items" in document or "comparison" in document:
        return None
    for key in ENVELOPE_KEYS:
        value = document.get(key)
        if isinstance(value, str) and value.lstrip()[:1] in ("{", "[", '"'):
            return value
    return None


def decode_document(raw: str | bytes) -> dict[str, Any]:
    """Parse a response body, unwrapping extra levels of string encoding."""

    document = _loads(raw)
    for _ in range(MAX_DECODE_DEPTH):
        if isinstance(document, str):
            document = _loads(document)
            continue
        if isinstance(document, dict):
            inner = _string_envelope(document)
            if inner is not None:
                document = _loads(inner)
                continue
        break
    if not isinstance(document, dict):
        raise MalformedResponseError(
            f"expected a JSON object after unwrapping, got {type(document).__name__}"
        )
    return document


def parse_rank_change(raw: Any, *, rank: int, previous_rank: int | None = None) -> RankChange:
    """Map the many source spellings of a rank movement onto ``RankChange``."""

    if raw is None:
        if previous_rank is None:
            return RankChange.new()
        return RankChange.from_delta(previous_rank - rank)
    if isinstance(raw, bool):
        raise ValueError(f"unsupported rank change value: {raw!r}")
    if isinstance(raw, int):
        return RankChange.from_delta(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text == "new":
            return RankChange.new()
        if text in _UNCHANGED_TAGS:
            return RankChange.unchanged()
        match = _DELTA_PATTERN.match(text)
        if match:
            amount = int(match.group("amount"))
            if amount == 0:
                return RankChange.unchanged()
            if match.group("tag") in ("up", "+"):
                return RankChange.up(amount)
            return RankChange.down(amount)
        raise ValueError(f"unsupported rank change value: {raw!r}")
    if isinstance(raw, Mapping):
        kind = str(raw.get("type") or raw.get("kind") or "").strip().lower()
        amount = raw.get("amount", raw.get("value", raw.get("n", 0)))
        if kind in ("up", "down"):
            if isinstance(amount, bool) or not isinstance(amount, (int, str)):
                raise ValueError(f"unsupported rank change amount: {amount!r}")
            return parse_rank_change(f"{kind}({str(amount).strip()})", rank=rank)
        return parse_rank_change(kind or None, rank=rank, previous_rank=previous_rank)
    raise ValueError(f"unsupported rank change value: {raw!r}")


class SourceEntry(BaseModel):
    """One channel record as delivered by any known source shape."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("id", "url", "youtube_url", "channel_url"),
    )
    rank: int = Field(ge=1, validation_alias=AliasChoices("rank", "current_rank", "currentRank"))
    display_name: str = Field(
        validation_alias=AliasChoices("displayName", "display_name", "name", "channel_name", "title")
    )
    icon_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("iconRef", "icon_ref", "icon", "thumbnail", "thumbnail_url"),
    )
    subscriber_count: int = Field(
        ge=0,
        validation_alias=AliasChoices(
            "subscriberCount",
            "subscriber_count",
            "subscribers",
            AliasPath("current_stats", "subscriber_count"),
            AliasPath("stats", "subscriber_count"),
        ),
    )
    monthly_views: int = Field(
        ge=0,
        validation_alias=AliasChoices(
            "monthlyViews",
            "monthly_views",
            "views",
            AliasPath("current_stats", "monthly_views"),
            AliasPath("stats", "monthly_views"),
        ),
    )
    rank_change: Any = Field(
        default=None, validation_alias=AliasChoices("rankChange", "rank_change", "change")
    )
    previous_rank: int | None = Field(
        default=None, validation_alias=AliasChoices("previousRank", "previous_rank", "last_rank")
    )

    def to_entry(self) -> RankingEntry:
        return RankingEntry(
            id=self.id,
            rank=self.rank,
            display_name=self.display_name,
            icon_ref=self.icon_ref or PLACEHOLDER_ICON,
            subscriber_count=self.subscriber_count,
            monthly_views=self.monthly_views,
            rank_change=parse_rank_change(
                self.rank_change, rank=self.rank, previous_rank=self.previous_rank
            ),
        )


class SourcePagination(BaseModel):
    model_config = ConfigDict(extra="ignore")

    page: int = Field(ge=1, validation_alias=AliasChoices("page", "pageNumber", "current_page"))
    total_items: int = Field(ge=0, validation_alias=AliasChoices("totalItems", "total_items", "total"))
    page_size: int | None = Field(
        default=None, ge=1, validation_alias=AliasChoices("pageSize", "page_size", "per_page")
    )
    total_pages: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("totalPages", "total_pages", "pages")
    )


def _snapshot_id(document: Mapping[str, Any]) -> str | None:
    for scope in (document, document.get("metadata")):
        if not isinstance(scope, Mapping):
            continue
        for key in SNAPSHOT_KEYS:
            value = scope.get(key)
            if value not in (None, ""):
                return str(value)
    return None


def _entries(records: list[Any]) -> tuple[RankingEntry, ...]:
    return tuple(SourceEntry.model_validate(record).to_entry() for record in records)


class SourceAdapter(Protocol):
    """Maps a page request onto query parameters and a decoded body onto a Page."""

    name: str
    single_document: bool

    def request_params(self, page: int, page_size: int) -> dict[str, Any]: ...

    def parse(self, document: Mapping[str, Any], page: int, page_size: int) -> Page: ...


class PaginatedApiAdapter:
    """Live API returning ``{items: [...], pagination: {...}}`` per page."""

    name = "api"
    single_document = False

    def request_params(self, page: int, page_size: int) -> dict[str, Any]:
        return {"page": page, "pageSize": page_size}

    def parse(self, document: Mapping[str, Any], page: int, page_size: int) -> Page:
        items = document.get("items")
        if not isinstance(items, list):
            raise MalformedResponseError(
                "response does not expose items as a sequence", page=page
            )
        pagination = document.get("pagination")
        if not isinstance(pagination, Mapping):
            raise MalformedResponseError("response carries no pagination block", page=page)
        try:
            meta = SourcePagination.model_validate(pagination)
            size = meta.page_size or page_size
            total_pages = (
                meta.total_pages
                if meta.total_pages is not None
                else page_count(meta.total_items, size)
            )
            return Page(
                items=_entries(items),
                page_number=meta.page,
                total_pages=total_pages,
                total_items=meta.total_items,
                page_size=size,
                snapshot_id=_snapshot_id(document),
            )
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed page {page}: {exc}", page=page) from exc


class SnapshotAdapter:
    """Static comparison snapshot holding the whole ranking in one document.

    The document is ``{metadata: {...}, comparison: {changes: [...]}}``; pages
    are cut client-side in rank order.
    """

    name = "snapshot"
    single_document = True

    def request_params(self, page: int, page_size: int) -> dict[str, Any]:
        return {}

    def parse(self, document: Mapping[str, Any], page: int, page_size: int) -> Page:
        comparison = document.get("comparison")
        records = comparison.get("changes") if isinstance(comparison, Mapping) else None
        if records is None:
            records = document.get("items")
        if not isinstance(records, list):
            raise MalformedResponseError(
                "snapshot does not expose channel records as a sequence", page=page
            )
        try:
            entries = sorted(_entries(records), key=lambda entry: entry.rank)
            start = (page - 1) * page_size
            return Page(
                items=tuple(entries[start : start + page_size]),
                page_number=page,
                total_pages=page_count(len(entries), page_size),
                total_items=len(entries),
                page_size=page_size,
                snapshot_id=_snapshot_id(document),
            )
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(f"malformed snapshot: {exc}", page=page) from exc


ADAPTERS: dict[str, type] = {
    PaginatedApiAdapter.name: PaginatedApiAdapter,
    SnapshotAdapter.name: SnapshotAdapter,
}


def build_adapter(name: str) -> SourceAdapter:
    try:
        return ADAPTERS[name]()
    except KeyError:
        raise ValueError(
            f"Unsupported source adapter: {name} (known: {', '.join(sorted(ADAPTERS))})"
        ) from None


__all__ = [
    "ADAPTERS",
    "PaginatedApiAdapter",
    "SnapshotAdapter",
    "SourceAdapter",
    "SourceEntry",
    "SourcePagination",
    "build_adapter",
    "decode_document",
    "parse_rank_change",
]
