"""Open Bus data-source exception definitions."""

from __future__ import annotations


class GapDataError(Exception):
    """Base class for failures while loading gap or route data."""


class FetchFailure(GapDataError):
    """Raised when an Open Bus endpoint cannot be reached or answers non-2xx."""


class DecodeFailure(GapDataError):
    """Raised when an Open Bus response is not the expected JSON shape."""


class StaleResponse(GapDataError):
    """Raised when a response arrives after a newer request superseded it."""


__all__ = [
    "GapDataError",
    "FetchFailure",
    "DecodeFailure",
    "StaleResponse",
]
