"""Exceptions raised inside the dashboard pipeline.

Fetchers catch these at their boundary and hand ``None`` to the caller;
only the API layer turns them into HTTP status codes.
"""

from typing import Optional


class DashboardError(Exception):
    """Base exception for the dashboard service."""


class FetchError(DashboardError):
    """An upstream source failed: non-2xx status, network error or bad body."""

    def __init__(self, source: str, message: str, status: Optional[int] = None):
        self.source = source
        self.status = status
        super().__init__(f"{source}: {message}")


class EmptyResultError(FetchError):
    """An upstream answered successfully but returned nothing usable."""


class InsufficientDataError(DashboardError):
    """Upstream data is too short for the dashboard layout."""


class RenderPipelineError(DashboardError):
    """Screenshot capture or PNG conversion failed."""
