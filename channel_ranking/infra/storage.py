"""SQLite persistence for the selection set between CLI invocations."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

import structlog


class SelectionStore:
    """Keep selected entry ids, scoped to one ranking snapshot.

    A newly published ranking starts with an empty selection. Ids of an older
    snapshot stay stored until a selection is saved for the new one.
    """

    def __init__(self, path: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.path = path
        self.logger = logger or structlog.get_logger("channel_ranking.storage")
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS selection (
                entry_id TEXT PRIMARY KEY,
                snapshot_key TEXT NOT NULL,
                selected_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def load(self, snapshot_key: str) -> set[str]:
        """Ids stored under ``snapshot_key``; rows of other snapshots are left alone."""

        stale = self._conn.execute(
            "SELECT count(*) FROM selection WHERE snapshot_key != ?", (snapshot_key,)
        ).fetchone()[0]
        if stale:
            self.logger.info("selection_ignored", snapshot_key=snapshot_key, stale=stale)
        rows = self._conn.execute(
            "SELECT entry_id FROM selection WHERE snapshot_key = ?", (snapshot_key,)
        ).fetchall()
        return {row["entry_id"] for row in rows}

    def save(self, snapshot_key: str, ids: Iterable[str]) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM selection")
            self._conn.executemany(
                "INSERT INTO selection(entry_id, snapshot_key, selected_at) "
                "VALUES (?, ?, datetime('now'))",
                [(entry_id, snapshot_key) for entry_id in sorted(set(ids))],
            )

    def clear(self) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM selection")

    def close(self) -> None:
        self._conn.close()


__all__ = ["SelectionStore"]
