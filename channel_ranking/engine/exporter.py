"""CSV export of selected ranking entries."""

from __future__ import annotations

import csv
import io
from datetime import date
from pathlib import Path
from typing import Iterable

import structlog

from ..errors import EmptySelectionError
from .models import RankingEntry

HEADER = ("rank", "displayName", "id", "subscriberCount", "monthlyViews", "rankChange")


class CsvExporter:
    """Render entries into a flat comma-separated document.

    Text fields are quoted only when they contain a delimiter, quote or line
    break, so ``A,B`` is written as ``"A,B"``.
    """

    extension = "csv"

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("channel_ranking.exporter")

    def export(self, entries: Iterable[RankingEntry]) -> bytes:
        rows = list(entries)
        if not rows:
            raise EmptySelectionError("Nothing is selected; refusing to export an empty table")
        buffer = io.StringIO(newline="")
        writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
        writer.writerow(HEADER)
        for entry in rows:
            writer.writerow(
                (
                    entry.rank,
                    entry.display_name,
                    entry.id,
                    entry.subscriber_count,
                    entry.monthly_views,
                    str(entry.rank_change),
                )
            )
        return buffer.getvalue().encode("utf-8")

    def suggested_filename(self, day: date | None = None) -> str:
        day = day or date.today()
        return f"ranking_{day.isoformat()}.{self.extension}"

    def save(
        self, entries: Iterable[RankingEntry], output_dir: Path, day: date | None = None
    ) -> Path:
        """Write the export into ``output_dir`` without clobbering earlier files."""

        document = self.export(entries)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / self.suggested_filename(day)
        stem = path.stem
        counter = 1
        while path.exists():
            counter += 1
            path = output_dir / f"{stem}_{counter}.{self.extension}"
        path.write_bytes(document)
        self.logger.info("export_written", path=str(path), bytes=len(document))
        return path


__all__ = ["CsvExporter", "HEADER"]
