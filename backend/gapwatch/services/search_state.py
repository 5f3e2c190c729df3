"""
Search state store.

Holds the current ``SearchState`` snapshot of one dashboard session. The only
way to change it is ``SearchStateStore.update`` with a pure transform, which is
applied to the latest snapshot under a lock and then persisted, so concurrent
edits (a picker change and a route list arriving) compose instead of
overwriting each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping

from gapwatch.models.search import BusRoute, SearchState, SearchStateUpdate

logger = logging.getLogger(__name__)

Transform = Callable[[SearchState], SearchState]
Persist = Callable[[SearchState], Awaitable[None]]


def parse_timestamp_param(raw: str | None) -> int | None:
    """Parse a ``timestamp`` query value; missing, invalid or zero means absent."""
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        try:
            value = int(float(raw))
        except (ValueError, OverflowError):
            return None
    return value or None


def bootstrap_search_state(
    query_params: Mapping[str, str],
    persisted: SearchState | None,
    now_ms: int,
) -> SearchState:
    """Merge URL parameters over a persisted state, falling back to defaults.

    ``now_ms`` is the clock reading taken once when the session was created.
    """
    base = persisted or SearchState(timestamp=now_ms)
    changes: dict[str, object] = {}

    timestamp = parse_timestamp_param(query_params.get("timestamp"))
    if timestamp is not None:
        changes["timestamp"] = timestamp
    for param, field in (
        ("operatorId", "operator_id"),
        ("lineNumber", "line_number"),
        ("routeKey", "route_key"),
    ):
        value = query_params.get(param)
        if value:
            changes[field] = value

    if (
        changes.get("operator_id", base.operator_id) != base.operator_id
        or changes.get("line_number", base.line_number) != base.line_number
    ):
        # Routes and the route picked for another line must not carry over.
        changes["routes"] = None
        changes.setdefault("route_key", "")

    return base.model_copy(update=changes) if changes else base


# =============================================================================
# Transforms
# =============================================================================


def set_operator(operator_id: str) -> Transform:
    def transform(current: SearchState) -> SearchState:
        if current.operator_id == operator_id:
            return current
        return current.model_copy(
            update={"operator_id": operator_id, "routes": None, "route_key": ""}
        )

    return transform


def set_line_number(line_number: str) -> Transform:
    def transform(current: SearchState) -> SearchState:
        if current.line_number == line_number:
            return current
        return current.model_copy(
            update={"line_number": line_number, "routes": None, "route_key": ""}
        )

    return transform


def set_route_key(route_key: str) -> Transform:
    def transform(current: SearchState) -> SearchState:
        return current.model_copy(update={"route_key": route_key})

    return transform


def set_timestamp(timestamp: int) -> Transform:
    def transform(current: SearchState) -> SearchState:
        return current.model_copy(update={"timestamp": timestamp})

    return transform


def with_routes(routes: Iterable[BusRoute]) -> Transform:
    resolved = tuple(routes)

    def transform(current: SearchState) -> SearchState:
        return current.model_copy(update={"routes": resolved})

    return transform


def compose(*transforms: Transform) -> Transform:
    """Chain transforms left to right into one atomic update."""

    def transform(current: SearchState) -> SearchState:
        for step in transforms:
            current = step(current)
        return current

    return transform


def apply_update(update: SearchStateUpdate) -> Transform:
    """Translate a picker submission into a single composed transform."""
    steps: list[Transform] = []
    if update.operator_id is not None:
        steps.append(set_operator(update.operator_id))
    if update.line_number is not None:
        steps.append(set_line_number(update.line_number))
    if update.route_key is not None:
        steps.append(set_route_key(update.route_key))
    if update.timestamp is not None:
        steps.append(set_timestamp(update.timestamp))
    return compose(*steps)


# =============================================================================
# Store
# =============================================================================


class SearchStateStore:
    """Owner of a session's search state."""

    def __init__(self, initial: SearchState, persist: Persist | None = None) -> None:
        self._state = initial
        self._persist = persist
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SearchState:
        """Current snapshot. Snapshots are immutable and swapped whole."""
        return self._state

    async def update(self, transform: Transform) -> SearchState:
        """Apply ``transform`` to the latest state, persist and return the result.

        If the transform raises, nothing is committed and the exception
        propagates to the caller.
        """
        async with self._lock:
            new_state = transform(self._state)
            if not isinstance(new_state, SearchState):
                raise TypeError(
                    f"Search transform returned {type(new_state).__name__}, "
                    "expected SearchState"
                )
            self._state = new_state
            logger.debug("Search state updated: %s", new_state.to_json())
            if self._persist is not None:
                await self._persist(new_state)
            return new_state


__all__ = [
    "SearchStateStore",
    "Transform",
    "apply_update",
    "bootstrap_search_state",
    "compose",
    "parse_timestamp_param",
    "set_line_number",
    "set_operator",
    "set_route_key",
    "set_timestamp",
    "with_routes",
]
