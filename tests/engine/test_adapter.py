from __future__ import annotations

import json

import pytest

from channel_ranking.engine.adapter import (
    PaginatedApiAdapter,
    SnapshotAdapter,
    build_adapter,
    decode_document,
    parse_rank_change,
)
from channel_ranking.engine.models import PLACEHOLDER_ICON, RankChange
from channel_ranking.errors import MalformedResponseError


def test_decode_document_unwraps_double_encoding(page_payload) -> None:
    payload = page_payload(1, 20, 45)
    single = json.dumps(payload)
    double = json.dumps(single)
    assert decode_document(single) == payload
    assert decode_document(double) == decode_document(single)
    assert decode_document(double.encode("utf-8")) == payload


def test_decode_document_unwraps_string_envelope(page_payload) -> None:
    payload = page_payload(2, 20, 45)
    wrapped = json.dumps({"statusCode": 200, "body": json.dumps(payload)})
    assert decode_document(wrapped) == payload


@pytest.mark.parametrize("raw", ["not json", "[1, 2, 3]", json.dumps("plain text")])
def test_decode_document_rejects_non_objects(raw: str) -> None:
    with pytest.raises(MalformedResponseError):
        decode_document(raw)


def test_api_adapter_builds_page(page_payload) -> None:
    adapter = PaginatedApiAdapter()
    assert adapter.request_params(3, 20) == {"page": 3, "pageSize": 20}
    page = adapter.parse(page_payload(3, 20, 45), 3, 20)
    assert page.page_number == 3
    assert page.total_pages == 3
    assert page.total_items == 45
    assert [entry.rank for entry in page.items] == [41, 42, 43, 44, 45]
    assert page.items[0].icon_ref == "https://img.example.com/41.png"


def test_api_adapter_requires_items_sequence(page_payload) -> None:
    payload = page_payload(1, 20, 45)
    payload["items"] = {"rank": 1}
    with pytest.raises(MalformedResponseError) as excinfo:
        PaginatedApiAdapter().parse(payload, 1, 20)
    assert excinfo.value.page == 1


def test_api_adapter_rejects_missing_pagination(page_payload) -> None:
    payload = page_payload(1, 20, 45)
    del payload["pagination"]
    with pytest.raises(MalformedResponseError):
        PaginatedApiAdapter().parse(payload, 1, 20)


def test_api_adapter_rejects_inconsistent_page_count(page_payload) -> None:
    payload = page_payload(1, 20, 45)
    payload["pagination"]["totalPages"] = 7
    with pytest.raises(MalformedResponseError):
        PaginatedApiAdapter().parse(payload, 1, 20)


def test_api_adapter_rejects_entry_without_views(page_payload, record) -> None:
    payload = page_payload(1, 20, 45)
    broken = record(1)
    del broken["monthlyViews"]
    payload["items"][0] = broken
    with pytest.raises(MalformedResponseError):
        PaginatedApiAdapter().parse(payload, 1, 20)


def test_api_adapter_uses_placeholder_icon(page_payload, record) -> None:
    payload = page_payload(1, 20, 45)
    bare = record(1)
    del bare["iconRef"]
    payload["items"][0] = bare
    page = PaginatedApiAdapter().parse(payload, 1, 20)
    assert page.items[0].icon_ref == PLACEHOLDER_ICON


def test_snapshot_adapter_slices_comparison_changes() -> None:
    changes = [
        {
            "youtube_url": f"https://youtube.com/@snap{rank}",
            "current_rank": rank,
            "channel_name": f"Snap {rank}",
            "current_stats": {"subscriber_count": 500 * rank, "monthly_views": 900 * rank},
            "previous_rank": rank + 1 if rank % 2 else None,
        }
        for rank in (5, 3, 1, 4, 2)
    ]
    document = {
        "metadata": {"total_channels": 5, "generated_at": "2026-10-01T00:00:00Z"},
        "comparison": {"changes": changes},
    }
    adapter = SnapshotAdapter()
    assert adapter.request_params(2, 2) == {}
    page = adapter.parse(document, 2, 2)
    assert [entry.rank for entry in page.items] == [3, 4]
    assert page.total_pages == 3
    assert page.total_items == 5
    assert page.snapshot_id == "2026-10-01T00:00:00Z"
    third, fourth = page.items
    assert third.display_name == "Snap 3"
    assert third.subscriber_count == 1500
    assert third.rank_change == RankChange.up(1)
    assert fourth.rank_change.is_new


def test_snapshot_adapter_requires_records() -> None:
    with pytest.raises(MalformedResponseError):
        SnapshotAdapter().parse({"metadata": {}}, 1, 20)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("new", RankChange.new()),
        ("NEW", RankChange.new()),
        ("unchanged", RankChange.unchanged()),
        ("up(3)", RankChange.up(3)),
        ("Down 2", RankChange.down(2)),
        ("+4", RankChange.up(4)),
        ("-1", RankChange.down(1)),
        (5, RankChange.up(5)),
        (-2, RankChange.down(2)),
        (0, RankChange.unchanged()),
        ({"type": "down", "amount": 6}, RankChange.down(6)),
        ({"type": "up", "amount": "2"}, RankChange.up(2)),
        ({"kind": "new"}, RankChange.new()),
    ],
)
def test_parse_rank_change_variants(raw, expected) -> None:
    assert parse_rank_change(raw, rank=10) == expected


def test_parse_rank_change_from_previous_rank() -> None:
    assert parse_rank_change(None, rank=4) == RankChange.new()
    assert parse_rank_change(None, rank=4, previous_rank=9) == RankChange.up(5)
    assert parse_rank_change(None, rank=4, previous_rank=4) == RankChange.unchanged()


@pytest.mark.parametrize(
    "raw",
    [
        True,
        "sideways",
        1.5,
        {"type": "up", "amount": None},
        {"type": "down", "amount": [1]},
        {"type": "up", "amount": "many"},
        {"type": "up", "amount": True},
    ],
)
def test_parse_rank_change_rejects_unknown(raw) -> None:
    with pytest.raises(ValueError):
        parse_rank_change(raw, rank=1)


def test_build_adapter_rejects_unknown_name() -> None:
    assert build_adapter("api").name == "api"
    with pytest.raises(ValueError):
        build_adapter("graphql")


def test_api_adapter_rejects_rank_change_without_amount(page_payload, record) -> None:
    payload = page_payload(1, 20, 1)
    payload["items"] = [record(1, rankChange={"type": "up", "amount": None})]
    with pytest.raises(MalformedResponseError):
        PaginatedApiAdapter().parse(payload, 1, 20)
