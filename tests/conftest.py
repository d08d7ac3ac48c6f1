"""Shared fixtures: entry builders, fake ranking sources and temp config roots."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from channel_ranking.config import ConfigLocator, ConfigRepository, DashboardConfig, SourceConfig
from channel_ranking.engine import RankChange, RankingEntry

API_ENDPOINT = "https://rankings.example.com/api/channels"


@pytest.fixture
def make_entry() -> Callable[..., RankingEntry]:
    def _builder(rank: int = 1, **overrides: Any) -> RankingEntry:
        base: dict[str, Any] = {
            "id": f"https://youtube.com/@channel{rank}",
            "rank": rank,
            "display_name": f"Channel {rank}",
            "subscriber_count": 1_000 * rank,
            "monthly_views": 10_000 * rank,
            "rank_change": RankChange.unchanged(),
        }
        base.update(overrides)
        return RankingEntry(**base)

    return _builder


def source_record(rank: int, **overrides: Any) -> dict[str, Any]:
    """One channel as the paginated API delivers it."""

    record: dict[str, Any] = {
        "id": f"https://youtube.com/@channel{rank}",
        "rank": rank,
        "displayName": f"Channel {rank}",
        "iconRef": f"https://img.example.com/{rank}.png",
        "subscriberCount": 1_000 * rank,
        "monthlyViews": 10_000 * rank,
        "rankChange": "unchanged",
    }
    record.update(overrides)
    return record


def api_page_payload(
    page: int, page_size: int, total_items: int, **extra: Any
) -> dict[str, Any]:
    start = (page - 1) * page_size + 1
    stop = min(start + page_size, total_items + 1)
    payload: dict[str, Any] = {
        "items": [source_record(rank) for rank in range(start, stop)],
        "pagination": {
            "page": page,
            "pageSize": page_size,
            "totalItems": total_items,
            "totalPages": math.ceil(total_items / page_size),
        },
    }
    payload.update(extra)
    return payload


class FakeRankingApi:
    """MockTransport handler serving pages of a synthetic ranking."""

    def __init__(
        self,
        total_items: int = 45,
        *,
        double_encode: bool = False,
        snapshot_id: str | None = None,
    ) -> None:
        self.total_items = total_items
        self.double_encode = double_encode
        self.snapshot_id = snapshot_id
        self.requests: list[int] = []
        self.failures: dict[int, list[int]] = {}

    def fail(self, page: int, *statuses: int) -> None:
        """Answer the next requests for ``page`` with ``statuses`` in order."""

        self.failures.setdefault(page, []).extend(statuses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        page_size = int(request.url.params.get("pageSize", "20"))
        self.requests.append(page)
        pending = self.failures.get(page)
        if pending:
            return httpx.Response(pending.pop(0), text="unavailable")
        extra = {"snapshotId": self.snapshot_id} if self.snapshot_id else {}
        body = json.dumps(api_page_payload(page, page_size, self.total_items, **extra))
        if self.double_encode:
            body = json.dumps(body)
        return httpx.Response(200, text=body, headers={"Content-Type": "application/json"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_api() -> FakeRankingApi:
    return FakeRankingApi()


@pytest.fixture
def source_config() -> Callable[..., SourceConfig]:
    def _builder(**overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {
            "endpoint": API_ENDPOINT,
            "adapter": "api",
            "timeout": 5.0,
            "retry_on_fail": 1,
            "retry_backoff": 0.0,
        }
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def dashboard_config(tmp_path: Path, source_config) -> Callable[..., DashboardConfig]:
    def _builder(**overrides: Any) -> DashboardConfig:
        base: dict[str, Any] = {
            "source": source_config(),
            "page_size": 20,
            "prefetch": False,
            "outputs_dir": tmp_path / "outputs",
            "selection_store": tmp_path / "selection.db",
        }
        base.update(overrides)
        return DashboardConfig(**base)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("CHANNEL_RANKING_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository


@pytest.fixture
def make_api() -> Callable[..., FakeRankingApi]:
    return FakeRankingApi


@pytest.fixture
def page_payload() -> Callable[..., dict[str, Any]]:
    return api_page_payload


@pytest.fixture
def record() -> Callable[..., dict[str, Any]]:
    return source_record
