from __future__ import annotations

from datetime import date

import pytest

from channel_ranking.engine.exporter import HEADER, CsvExporter
from channel_ranking.engine.models import RankChange
from channel_ranking.engine.selection import SelectionTracker
from channel_ranking.errors import EmptySelectionError


def test_toggle_flips_membership() -> None:
    tracker = SelectionTracker()
    assert tracker.toggle("u1") is True
    assert tracker.is_selected("u1")
    assert tracker.toggle("u1") is False
    assert not tracker.is_selected("u1")
    assert tracker.size() == 0


def test_select_all_replaces_instead_of_merging() -> None:
    tracker = SelectionTracker(["a", "b"])
    tracker.select_all(["c"])
    assert tracker.ids() == frozenset({"c"})

    tracker.select_all([])
    assert len(tracker) == 0


def test_clear_empties_selection() -> None:
    tracker = SelectionTracker(["a", "b"])
    tracker.clear()
    assert tracker.size() == 0
    assert "a" not in tracker


def test_export_quotes_only_where_needed(make_entry) -> None:
    entry = make_entry(
        1,
        id="u1",
        display_name="A,B",
        subscriber_count=10,
        monthly_views=100,
        rank_change=RankChange.new(),
    )
    document = CsvExporter().export([entry]).decode("utf-8")
    lines = document.splitlines()

    assert lines[0] == ",".join(HEADER)
    assert lines[1] == '1,"A,B",u1,10,100,New'


def test_export_renders_rank_change_labels(make_entry) -> None:
    entries = [
        make_entry(1, rank_change=RankChange.up(3)),
        make_entry(2, rank_change=RankChange.down(1)),
        make_entry(3, rank_change=RankChange.unchanged()),
    ]
    rows = CsvExporter().export(entries).decode("utf-8").splitlines()[1:]

    assert [row.rsplit(",", 1)[1] for row in rows] == ["Up(3)", "Down(1)", "Unchanged"]


def test_export_refuses_empty_selection() -> None:
    with pytest.raises(EmptySelectionError):
        CsvExporter().export([])


def test_suggested_filename_uses_iso_date() -> None:
    assert CsvExporter().suggested_filename(date(2026, 3, 9)) == "ranking_2026-03-09.csv"


def test_save_never_overwrites(tmp_path, make_entry) -> None:
    exporter = CsvExporter()
    day = date(2026, 10, 19)

    first = exporter.save([make_entry(1)], tmp_path, day=day)
    second = exporter.save([make_entry(2)], tmp_path, day=day)

    assert first.name == "ranking_2026-10-19.csv"
    assert second.name == "ranking_2026-10-19_2.csv"
    assert "Channel 1" in first.read_text(encoding="utf-8")
    assert "Channel 2" in second.read_text(encoding="utf-8")
