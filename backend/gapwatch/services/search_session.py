"""
Per-browser-session wiring of the search state and its consumers.

A ``SearchSession`` bundles the store with the components that read and write
it. Sessions live in process in a bounded registry; their state is persisted
through the ``SessionStore`` so it survives an eviction or a restart within
the session's TTL.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable
from zoneinfo import ZoneInfo

from gapwatch.core.config import Settings, get_settings
from gapwatch.core.pages import PAGES, Page
from gapwatch.models.search import SearchState
from gapwatch.services.hourly_gaps import HourlyGapAggregator
from gapwatch.services.open_bus_client import OpenBusSource
from gapwatch.services.route_resolver import RouteResolver
from gapwatch.services.search_state import SearchStateStore
from gapwatch.services.session_store import SessionStore
from gapwatch.services.state_sync import NavigationSurface, SearchStateSynchronizer

logger = logging.getLogger(__name__)

_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def is_valid_session_id(value: str | None) -> bool:
    """Session ids come from a cookie; only accept ones shaped like ours."""
    return bool(value) and _SESSION_ID_PATTERN.match(value) is not None


@dataclass
class SearchSession:
    session_id: str
    store: SearchStateStore
    synchronizer: SearchStateSynchronizer
    route_resolver: RouteResolver
    aggregator: HourlyGapAggregator

    @property
    def search(self) -> SearchState:
        return self.store.state


class SessionRegistry:
    """Creates, bootstraps and caches ``SearchSession`` objects."""

    def __init__(
        self,
        session_store: SessionStore,
        source: OpenBusSource,
        settings: Settings | None = None,
        *,
        pages: tuple[Page, ...] = PAGES,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.settings = settings or get_settings()
        self._session_store = session_store
        self._source = source
        self._pages = pages
        self._clock = clock
        self._tz = ZoneInfo(self.settings.display_timezone)
        self._max_size = self.settings.session_registry_max_size
        self._sessions: OrderedDict[str, SearchSession] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    async def get_or_create(
        self, session_id: str | None, navigation: NavigationSurface
    ) -> SearchSession:
        """Return the live session for ``session_id``, bootstrapping it if needed."""
        async with self._lock:
            if session_id and session_id in self._sessions:
                self._sessions.move_to_end(session_id)
                return self._sessions[session_id]

            if not is_valid_session_id(session_id):
                session_id = new_session_id()
            persisted = await self._session_store.load(session_id)
            now_ms = self._clock()
            session = self._build(session_id, SearchState(timestamp=now_ms))
            await session.synchronizer.bootstrap(navigation, persisted, now_ms)

            self._sessions[session_id] = session
            while len(self._sessions) > self._max_size:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug("Evicted search session %s from registry", evicted)

            logger.info(
                "Started search session (persisted state: %s)",
                "yes" if persisted else "no",
            )
            return session

    def _build(self, session_id: str, initial: SearchState) -> SearchSession:
        async def persist(state: SearchState) -> None:
            await self._session_store.save(session_id, state)

        store = SearchStateStore(initial, persist)
        return SearchSession(
            session_id=session_id,
            store=store,
            synchronizer=SearchStateSynchronizer(store, self._pages),
            route_resolver=RouteResolver(store, self._source),
            aggregator=HourlyGapAggregator(self._source, self._tz),
        )


__all__ = [
    "SearchSession",
    "SessionRegistry",
    "is_valid_session_id",
    "new_session_id",
]
