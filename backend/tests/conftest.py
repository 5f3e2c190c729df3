from __future__ import annotations

import sys
import time
from datetime import date
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from gapwatch.api.v1.shared.dependencies import get_session_registry  # noqa: E402
from gapwatch.core.config import Settings  # noqa: E402
from gapwatch.main import create_app  # noqa: E402
from gapwatch.models.gaps import GapRecord  # noqa: E402
from gapwatch.models.search import BusRoute  # noqa: E402
from gapwatch.services.search_session import SessionRegistry  # noqa: E402
from gapwatch.services.session_store import SessionStore  # noqa: E402

FIXED_NOW_MS = 1_700_000_000_000


class FakeValkey:
    """In-memory Valkey replacement used for tests."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[str, float | None]] = {}
        self.should_fail = False

    def _prune(self) -> None:
        now = time.monotonic()
        expired = [
            key
            for key, (_, expires_at) in self._store.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            self._store.pop(key, None)

    async def get(self, key: str) -> str | None:
        self._prune()
        if self.should_fail:
            raise RuntimeError("valkey unavailable")
        record = self._store.get(key)
        if record is None:
            return None
        value, _ = record
        return value

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._prune()
        if self.should_fail:
            raise RuntimeError("valkey unavailable")
        expires_at = time.monotonic() + ex if ex else None
        self._store[key] = (value, expires_at)
        return True


class FakeOpenBusSource:
    """Scriptable stand-in for the Open Bus gaps and routes APIs."""

    def __init__(self) -> None:
        self.gaps: list[GapRecord] = []
        self.routes: list[BusRoute] = []
        self.gaps_error: Exception | None = None
        self.routes_error: Exception | None = None
        self.gap_calls: list[tuple[date, date, str, int]] = []
        self.route_calls: list[tuple[date, date, str, str]] = []

    async def fetch_gaps(
        self, date_from: date, date_to: date, operator_id: str, line_ref: int
    ) -> list[GapRecord]:
        self.gap_calls.append((date_from, date_to, operator_id, line_ref))
        if self.gaps_error is not None:
            raise self.gaps_error
        return list(self.gaps)

    async def fetch_routes(
        self, date_from: date, date_to: date, operator_id: str, line_number: str
    ) -> list[BusRoute]:
        self.route_calls.append((date_from, date_to, operator_id, line_number))
        if self.routes_error is not None:
            raise self.routes_error
        return list(self.routes)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        DISPLAY_TIMEZONE="UTC",
        SESSION_TTL_SECONDS=600,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture()
def fake_valkey() -> FakeValkey:
    return FakeValkey()


@pytest.fixture()
def session_store(fake_valkey: FakeValkey, settings: Settings) -> SessionStore:
    return SessionStore(fake_valkey, settings)


@pytest.fixture()
def fake_source() -> FakeOpenBusSource:
    return FakeOpenBusSource()


@pytest.fixture()
def registry(
    session_store: SessionStore, fake_source: FakeOpenBusSource, settings: Settings
) -> SessionRegistry:
    return SessionRegistry(
        session_store, fake_source, settings, clock=lambda: FIXED_NOW_MS
    )


@pytest.fixture()
def api_client(registry: SessionRegistry) -> Iterator[TestClient]:
    """Test client whose sessions use fake Valkey and a fake upstream."""
    app = create_app()
    app.dependency_overrides[get_session_registry] = lambda: registry
    with TestClient(app, follow_redirects=False) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def sample_routes() -> list[BusRoute]:
    return [
        BusRoute(key="10017-1-0", line_ref=7017, line_refs=(7017,)),
        BusRoute(key="10017-2-0", line_ref=7018, line_refs=(7018,)),
    ]
