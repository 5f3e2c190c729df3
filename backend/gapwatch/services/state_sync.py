"""
Search state synchronization between page URLs and the session store.

Bootstrap (URL -> state) runs once when a session is created. Publish
(state -> URL) runs on every page view: pages flagged with
``search_params_required`` get the current search written into their query
string so the view can be shared or bookmarked.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

from gapwatch.core.pages import PAGES, Page, find_page
from gapwatch.models.search import SearchState
from gapwatch.services.search_state import SearchStateStore, bootstrap_search_state

logger = logging.getLogger(__name__)


class NavigationSurface(Protocol):
    """Current location of a view and a way to rewrite its query string."""

    @property
    def path(self) -> str: ...

    @property
    def query_params(self) -> Mapping[str, str]: ...

    def replace(self, params: Mapping[str, str]) -> None:
        """Replace the current entry's query string; never push a new entry."""
        ...


def canonical_query_params(state: SearchState) -> dict[str, str]:
    """Query parameters that reproduce ``state`` when bootstrapped."""
    params = {"timestamp": str(state.timestamp)}
    if state.operator_id:
        params["operatorId"] = state.operator_id
    if state.line_number:
        params["lineNumber"] = state.line_number
    if state.route_key:
        params["routeKey"] = state.route_key
    return params


class SearchStateSynchronizer:
    """Keeps one session's store and its page URLs consistent."""

    def __init__(self, store: SearchStateStore, pages: tuple[Page, ...] = PAGES):
        self._store = store
        self._pages = pages
        self._bootstrapped = False
        self._publishing = False

    @property
    def bootstrapped(self) -> bool:
        return self._bootstrapped

    async def bootstrap(
        self,
        navigation: NavigationSurface,
        persisted: SearchState | None,
        now_ms: int,
    ) -> SearchState:
        """Seed the store from the URL the session started on.

        Only the first call has an effect; later navigations never re-seed.
        """
        if self._bootstrapped:
            return self._store.state
        self._bootstrapped = True
        seeded = bootstrap_search_state(navigation.query_params, persisted, now_ms)
        logger.debug("Bootstrapped search state from %s", navigation.path)
        return await self._store.update(lambda _current: seeded)

    def publish(self, navigation: NavigationSurface) -> bool:
        """Write the current search into the URL if the page asks for it.

        Returns True when the query string was replaced.
        """
        if self._publishing:
            return False

        page = find_page(navigation.path, self._pages)
        if page is None or not page.search_params_required:
            return False

        params = canonical_query_params(self._store.state)
        if dict(navigation.query_params) == params:
            return False

        self._publishing = True
        try:
            navigation.replace(params)
        finally:
            self._publishing = False
        logger.debug("Published search state to %s", navigation.path)
        return True

    def sync(self, navigation: NavigationSurface) -> bool:
        """Reconcile one render cycle of ``navigation``."""
        return self.publish(navigation)


__all__ = [
    "NavigationSurface",
    "SearchStateSynchronizer",
    "canonical_query_params",
]
