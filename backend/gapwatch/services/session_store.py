"""
Browser-session persistence for search state.

Search states are stored in Valkey with:
- A cool-down after a Valkey failure, during which Valkey is not called
- An in-process copy of each saved state so a session survives an outage
- Sliding TTL, refreshed on every save
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import TypeVar

import valkey.asyncio as valkey
from pydantic import ValidationError

from gapwatch.core.config import Settings, get_settings
from gapwatch.core.metrics import record_session_store_event
from gapwatch.models.search import SearchState

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Valkey guard
# =============================================================================


class ValkeyGuard:
    """Stops calling Valkey for ``cooldown_seconds`` after a call fails."""

    def __init__(self, cooldown_seconds: float) -> None:
        self._cooldown_seconds = cooldown_seconds
        self._retry_at = 0.0

    @property
    def tripped(self) -> bool:
        return time.monotonic() < self._retry_at

    async def call(self, operation: str, func: Callable[[], Awaitable[T]]) -> T | None:
        """Run ``func`` unless tripped; a failure trips the guard and yields None."""
        if self.tripped:
            return None
        try:
            result = await func()
        except Exception as exc:
            logger.warning(
                "Valkey %s failed, using local session copies for %.1fs",
                operation,
                self._cooldown_seconds,
                exc_info=exc,
            )
            record_session_store_event(operation, "valkey_error")
            self._retry_at = time.monotonic() + self._cooldown_seconds
            return None
        self._retry_at = 0.0
        return result


# =============================================================================
# Local session copies
# =============================================================================


class LocalSessionStates:
    """Last saved state per session key, kept for the session TTL."""

    def __init__(self, ttl_seconds: int) -> None:
        self._ttl_seconds = ttl_seconds
        self._states: dict[str, tuple[SearchState, float]] = {}
        self._next_sweep = time.monotonic() + ttl_seconds

    def put(self, key: str, state: SearchState) -> None:
        now = time.monotonic()
        self._states[key] = (state, now + self._ttl_seconds)
        if now >= self._next_sweep:
            self._sweep(now)

    def get(self, key: str) -> SearchState | None:
        entry = self._states.get(key)
        if entry is None:
            return None
        state, expires_at = entry
        if expires_at <= time.monotonic():
            del self._states[key]
            return None
        return state

    def __len__(self) -> int:
        return len(self._states)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._states.items() if expires_at <= now]
        for key in expired:
            del self._states[key]
        self._next_sweep = now + self._ttl_seconds


# =============================================================================
# Session Store
# =============================================================================


class SessionStore:
    """Persists one ``SearchState`` per browser session."""

    KEY_TEMPLATE = "gapwatch:session:{session_id}:search"

    def __init__(self, client: valkey.Valkey, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._client = client
        self._ttl_seconds = settings.session_ttl_seconds
        self._guard = ValkeyGuard(settings.valkey_cooldown_seconds)
        self._local = LocalSessionStates(settings.session_ttl_seconds)

    def key_for(self, session_id: str) -> str:
        return self.KEY_TEMPLATE.format(session_id=session_id)

    async def load(self, session_id: str) -> SearchState | None:
        """Return the persisted state of a session, or None if there is none."""
        key = self.key_for(session_id)
        payload = await self._guard.call("load", lambda: self._client.get(key))
        if payload is None:
            state = self._local.get(key)
            record_session_store_event("load", "local_hit" if state else "miss")
            return state

        try:
            state = SearchState.model_validate(json.loads(payload))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Discarding unreadable search state for %s: %s", key, exc)
            record_session_store_event("load", "invalid")
            return None

        record_session_store_event("load", "hit")
        return state

    async def save(self, session_id: str, state: SearchState) -> None:
        """Persist a session's state, refreshing its TTL."""
        key = self.key_for(session_id)
        encoded = json.dumps(state.to_json())
        stored = await self._guard.call(
            "save", lambda: self._client.set(key, encoded, ex=self._ttl_seconds)
        )
        record_session_store_event("save", "valkey" if stored else "local")
        self._local.put(key, state)


# =============================================================================
# Factory Functions
# =============================================================================


@lru_cache
def get_valkey_client() -> valkey.Valkey:
    """Return a shared Valkey client instance."""
    settings = get_settings()
    return valkey.from_url(
        settings.valkey_url,
        encoding="utf-8",
        decode_responses=True,
    )


def get_session_store() -> SessionStore:
    return SessionStore(get_valkey_client())


__all__ = [
    "LocalSessionStates",
    "SessionStore",
    "ValkeyGuard",
    "get_session_store",
    "get_valkey_client",
]
