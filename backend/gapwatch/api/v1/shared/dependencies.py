"""
Shared dependency injection functions for API endpoints.
"""

from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from fastapi import Depends, Query, Request, Response

from gapwatch.api.navigation import RequestNavigation
from gapwatch.api.v1.shared.errors import invalid_date_range
from gapwatch.api.v1.shared.validation import resolve_date_range
from gapwatch.core.config import Settings, get_settings
from gapwatch.services.open_bus_client import OpenBusClient
from gapwatch.services.search_session import SearchSession, SessionRegistry
from gapwatch.services.session_store import get_session_store


@lru_cache
def get_open_bus_client() -> OpenBusClient:
    """Return the shared upstream client."""
    return OpenBusClient()


@lru_cache
def get_session_registry() -> SessionRegistry:
    """Return the process-wide registry of live search sessions."""
    return SessionRegistry(get_session_store(), get_open_bus_client())


def attach_session_cookie(
    response: Response, session_id: str, settings: Settings
) -> None:
    """Set the session cookie; no max-age, so it ends with the browser session."""
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


async def get_search_session(
    request: Request,
    response: Response,
    registry: SessionRegistry = Depends(get_session_registry),
    settings: Settings = Depends(get_settings),
) -> SearchSession:
    """Resolve the caller's search session, creating it on first contact."""
    session = await registry.get_or_create(
        request.cookies.get(settings.session_cookie_name),
        RequestNavigation(request),
    )
    attach_session_cookie(response, session.session_id, settings)
    return session


def get_date_range(
    date_from: date | None = Query(
        None, description="First service day to include. Default: 7 days ago."
    ),
    date_to: date | None = Query(
        None, description="Last service day to include. Default: yesterday."
    ),
    settings: Settings = Depends(get_settings),
) -> tuple[date, date]:
    """Date range of a gap or route query, defaulting to the last week."""
    today = datetime.now(ZoneInfo(settings.display_timezone)).date()
    try:
        return resolve_date_range(
            date_from,
            date_to,
            today=today,
            lookback_days=settings.gaps_default_lookback_days,
        )
    except ValueError as exc:
        raise invalid_date_range(str(exc)) from exc
