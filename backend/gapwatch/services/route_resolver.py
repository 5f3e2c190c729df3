"""
Route resolution for the selected operator and line.

Every fetch is tagged with the inputs it was issued for. A response is merged
into the search state only while it is still the latest issued request and
the store still holds the same operator and line; otherwise it is dropped.
"""

from __future__ import annotations

import enum
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, NamedTuple

from gapwatch.core.metrics import record_stale_response
from gapwatch.models.search import BusRoute, SearchState
from gapwatch.services.open_bus_client import RouteSource
from gapwatch.services.open_bus_errors import GapDataError, StaleResponse
from gapwatch.services.search_state import SearchStateStore, Transform, with_routes

logger = logging.getLogger(__name__)


class ResolveOutcome(str, enum.Enum):
    APPLIED = "applied"
    STALE = "stale"
    FAILED = "failed"
    SKIPPED = "skipped"


class RouteRequest(NamedTuple):
    """Inputs a route fetch was issued for."""

    operator_id: str
    line_number: str
    date_from: date
    date_to: date


class RouteResolver:
    """Resolves ``SearchState.routes`` for the session's operator and line."""

    def __init__(self, store: SearchStateStore, source: RouteSource) -> None:
        self._store = store
        self._source = source
        self._latest_request: RouteRequest | None = None
        self._in_flight = 0

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @asynccontextmanager
    async def _loading(self) -> AsyncIterator[None]:
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    async def resolve(self, date_from: date, date_to: date) -> ResolveOutcome:
        """Fetch routes for the current operator/line and merge them if still relevant."""
        state = self._store.state
        if not state.operator_id or not state.line_number:
            return ResolveOutcome.SKIPPED

        request = RouteRequest(state.operator_id, state.line_number, date_from, date_to)
        self._latest_request = request

        async with self._loading():
            try:
                routes = await self._source.fetch_routes(
                    date_from, date_to, request.operator_id, request.line_number
                )
                await self._store.update(self._merge(request, routes))
            except StaleResponse as exc:
                record_stale_response("routes")
                logger.debug("%s", exc)
                return ResolveOutcome.STALE
            except GapDataError as exc:
                logger.warning(
                    "Error fetching routes for operator %s line %s: %s",
                    request.operator_id,
                    request.line_number,
                    exc,
                )
                return ResolveOutcome.FAILED

        logger.info(
            "Resolved %d routes for operator %s line %s",
            len(routes),
            request.operator_id,
            request.line_number,
        )
        return ResolveOutcome.APPLIED

    async def ensure(self, date_from: date, date_to: date) -> ResolveOutcome:
        """Resolve routes if a line is selected and its routes are still unknown.

        A request already issued for the same inputs is not repeated, so a
        failed fetch is only retried once the selection or range changes.
        """
        state = self._store.state
        if not state.operator_id or not state.line_number or state.routes is not None:
            return ResolveOutcome.SKIPPED
        request = RouteRequest(state.operator_id, state.line_number, date_from, date_to)
        if request == self._latest_request:
            return ResolveOutcome.SKIPPED
        return await self.resolve(date_from, date_to)

    def _merge(self, request: RouteRequest, routes: list[BusRoute]) -> Transform:
        apply_routes = with_routes(routes)

        def transform(current: SearchState) -> SearchState:
            if request != self._latest_request or (
                current.operator_id,
                current.line_number,
            ) != (request.operator_id, request.line_number):
                raise StaleResponse(f"Route response for {request} was superseded")
            return apply_routes(current)

        return transform


__all__ = ["ResolveOutcome", "RouteRequest", "RouteResolver"]
