"""
Search state endpoints.

The operator/line/route/date pickers submit their edits here. Every edit is
applied as one transform on the session's store, after which the route list
is resolved when an operator and a line are both selected.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends

from gapwatch.api.v1.shared.dependencies import get_date_range, get_search_session
from gapwatch.models.search import (
    RouteResolutionResponse,
    SearchStateResponse,
    SearchStateUpdate,
)
from gapwatch.services.search_session import SearchSession
from gapwatch.services.search_state import apply_update

logger = logging.getLogger(__name__)

router = APIRouter()


def _search_response(session: SearchSession) -> SearchStateResponse:
    return SearchStateResponse(
        search=session.search,
        routes_loading=session.route_resolver.is_loading,
    )


@router.get("", response_model=SearchStateResponse)
async def get_search(
    session: SearchSession = Depends(get_search_session),
    date_range: tuple[date, date] = Depends(get_date_range),
) -> SearchStateResponse:
    """Return the session's current search state, resolving its routes if unknown."""
    await session.route_resolver.ensure(*date_range)
    return _search_response(session)


@router.patch("", response_model=SearchStateResponse)
async def update_search(
    update: SearchStateUpdate,
    session: SearchSession = Depends(get_search_session),
    date_range: tuple[date, date] = Depends(get_date_range),
) -> SearchStateResponse:
    """Apply picker edits and resolve routes for a newly selected line."""
    await session.store.update(apply_update(update))
    outcome = await session.route_resolver.ensure(*date_range)
    logger.debug("Route resolution after search update: %s", outcome.value)

    return _search_response(session)


@router.post("/routes", response_model=RouteResolutionResponse)
async def resolve_routes(
    session: SearchSession = Depends(get_search_session),
    date_range: tuple[date, date] = Depends(get_date_range),
) -> RouteResolutionResponse:
    """Re-resolve the route list of the selected line (manual retry)."""
    outcome = await session.route_resolver.resolve(*date_range)
    return RouteResolutionResponse(
        outcome=outcome.value,
        search=session.search,
        routes_loading=session.route_resolver.is_loading,
    )
