"""Tests for URL <-> search state synchronization."""

from __future__ import annotations

from collections.abc import Mapping

import pytest

from gapwatch.models.search import SearchState
from gapwatch.services.search_state import SearchStateStore, set_operator
from gapwatch.services.state_sync import (
    SearchStateSynchronizer,
    canonical_query_params,
)

NOW_MS = 1_700_000_000_123


class FakeNavigation:
    """Records query replacements instead of touching browser history."""

    def __init__(self, path: str, query_params: Mapping[str, str] | None = None):
        self.path = path
        self.query_params: dict[str, str] = dict(query_params or {})
        self.replacements: list[dict[str, str]] = []
        self.on_replace = None

    def replace(self, params: Mapping[str, str]) -> None:
        self.query_params = dict(params)
        self.replacements.append(dict(params))
        if self.on_replace is not None:
            self.on_replace()


def make_synchronizer(initial: SearchState | None = None) -> SearchStateSynchronizer:
    store = SearchStateStore(initial or SearchState(timestamp=NOW_MS))
    return SearchStateSynchronizer(store)


def test_canonical_params_omit_empty_fields():
    assert canonical_query_params(SearchState(timestamp=5)) == {"timestamp": "5"}


@pytest.mark.asyncio
async def test_publish_then_bootstrap_round_trips():
    original = SearchState(
        timestamp=1700000000000, operator_id="3", line_number="17", route_key="R1"
    )
    publisher = make_synchronizer(original)
    navigation = FakeNavigation("/gaps")

    assert publisher.publish(navigation) is True

    reader = make_synchronizer()
    restored = await reader.bootstrap(navigation, None, NOW_MS)

    assert restored == original


@pytest.mark.asyncio
async def test_bootstrap_only_seeds_once():
    synchronizer = make_synchronizer()

    first = await synchronizer.bootstrap(
        FakeNavigation("/gaps", {"operatorId": "3"}), None, NOW_MS
    )
    second = await synchronizer.bootstrap(
        FakeNavigation("/gaps", {"operatorId": "5"}), None, NOW_MS
    )

    assert synchronizer.bootstrapped is True
    assert first.operator_id == "3"
    assert second.operator_id == "3"


@pytest.mark.asyncio
async def test_bootstrap_default_timestamp_is_session_clock():
    synchronizer = make_synchronizer()

    state = await synchronizer.bootstrap(FakeNavigation("/dashboard"), None, NOW_MS)

    assert state.timestamp == NOW_MS


@pytest.mark.parametrize("path", ["/dashboard", "/gaps_patterns", "/about", "/nope"])
def test_publish_skips_pages_without_search_params(path):
    navigation = FakeNavigation(path)

    assert make_synchronizer().publish(navigation) is False
    assert navigation.replacements == []


@pytest.mark.parametrize("path", ["/timeline", "/gaps", "/single-line-map"])
def test_publish_writes_search_into_flagged_pages(path):
    navigation = FakeNavigation(path, {"utm_source": "mail"})

    assert make_synchronizer().publish(navigation) is True
    assert navigation.replacements == [{"timestamp": str(NOW_MS)}]


def test_publish_does_not_replace_canonical_url():
    navigation = FakeNavigation("/gaps", {"timestamp": str(NOW_MS)})
    synchronizer = make_synchronizer()

    assert synchronizer.publish(navigation) is False
    assert synchronizer.sync(navigation) is False
    assert navigation.replacements == []


@pytest.mark.asyncio
async def test_publish_follows_store_updates():
    store = SearchStateStore(SearchState(timestamp=NOW_MS))
    synchronizer = SearchStateSynchronizer(store)
    navigation = FakeNavigation("/timeline")
    synchronizer.publish(navigation)

    await store.update(set_operator("3"))
    synchronizer.publish(navigation)

    assert navigation.query_params == {"timestamp": str(NOW_MS), "operatorId": "3"}
    assert len(navigation.replacements) == 2


def test_publish_is_not_reentrant():
    synchronizer = make_synchronizer()
    navigation = FakeNavigation("/gaps")
    nested_results: list[bool] = []

    def publish_again() -> None:
        navigation.query_params = {}
        nested_results.append(synchronizer.publish(navigation))

    navigation.on_replace = publish_again

    assert synchronizer.publish(navigation) is True
    assert nested_results == [False]
    assert len(navigation.replacements) == 1
