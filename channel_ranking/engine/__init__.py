"""Engine components: fetch → cache/prefetch → filter/sort → select → export."""

from .adapter import PaginatedApiAdapter, SnapshotAdapter, SourceAdapter, build_adapter
from .cache import PageCache
from .exporter import CsvExporter
from .fetcher import EntryFetcher
from .filters import apply_filters
from .models import (
    FilterSpec,
    Page,
    RankChange,
    RankingEntry,
    SortDirection,
    SortField,
    SortSpec,
)
from .prefetch import Prefetcher
from .selection import SelectionTracker
from .sorting import SortState, apply_sort

__all__ = [
    "CsvExporter",
    "EntryFetcher",
    "FilterSpec",
    "Page",
    "PageCache",
    "PaginatedApiAdapter",
    "Prefetcher",
    "RankChange",
    "RankingEntry",
    "SelectionTracker",
    "SnapshotAdapter",
    "SortDirection",
    "SortField",
    "SortSpec",
    "SortState",
    "SourceAdapter",
    "apply_filters",
    "apply_sort",
    "build_adapter",
]
