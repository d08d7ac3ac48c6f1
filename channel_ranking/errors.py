"""Exception hierarchy shared by the dashboard core."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for every error raised by the dashboard core."""


class FetchError(DashboardError):
    """A page could not be obtained from the ranking source."""

    def __init__(self, message: str, *, page: int | None = None) -> None:
        super().__init__(message)
        self.page = page


class NetworkError(FetchError):
    """Endpoint unreachable, timed out or answered with a non-2xx status."""

    def __init__(
        self, message: str, *, page: int | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message, page=page)
        self.status_code = status_code


class MalformedResponseError(FetchError):
    """Response body does not describe a well-formed page after unwrapping."""


class EmptySelectionError(DashboardError):
    """Export was requested while nothing is selected."""


__all__ = [
    "DashboardError",
    "EmptySelectionError",
    "FetchError",
    "MalformedResponseError",
    "NetworkError",
]
