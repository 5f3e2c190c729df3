"""Shared utilities for API v1 endpoints.

This package provides dependencies, validation and error helpers used across
multiple endpoint modules.
"""

from gapwatch.api.v1.shared.dependencies import (
    attach_session_cookie,
    get_date_range,
    get_open_bus_client,
    get_search_session,
    get_session_registry,
)
from gapwatch.api.v1.shared.errors import invalid_date_range
from gapwatch.api.v1.shared.validation import default_date_range, resolve_date_range

__all__ = [
    # Dependencies
    "attach_session_cookie",
    "get_date_range",
    "get_open_bus_client",
    "get_search_session",
    "get_session_registry",
    # Errors
    "invalid_date_range",
    # Validation
    "default_date_range",
    "resolve_date_range",
]
