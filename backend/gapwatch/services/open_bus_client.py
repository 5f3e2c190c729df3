from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Protocol, TypeVar

import httpx

from gapwatch.core.config import Settings, get_settings
from gapwatch.core.metrics import observe_upstream_request
from gapwatch.core.telemetry import upstream_span
from gapwatch.models.gaps import GapRecord
from gapwatch.models.search import BusRoute
from gapwatch.services.open_bus_errors import DecodeFailure, FetchFailure
from gapwatch.services.open_bus_mapping import map_gap_records, map_routes

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "GapSource",
    "RouteSource",
    "OpenBusSource",
    "OpenBusClient",
]


class GapSource(Protocol):
    async def fetch_gaps(
        self, date_from: date, date_to: date, operator_id: str, line_ref: int
    ) -> list[GapRecord]: ...


class RouteSource(Protocol):
    async def fetch_routes(
        self, date_from: date, date_to: date, operator_id: str, line_number: str
    ) -> list[BusRoute]: ...


class OpenBusSource(GapSource, RouteSource, Protocol):
    """Both data sources a search session needs."""


class OpenBusClient:
    """Async client for the Open Bus gaps backend and the Stride GTFS API."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=self.settings.upstream_timeout_seconds,
            headers={"User-Agent": "GapWatch/0.1"},
        )

    async def __aenter__(self) -> "OpenBusClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def fetch_gaps(
        self, date_from: date, date_to: date, operator_id: str, line_ref: int
    ) -> list[GapRecord]:
        """Fetch planned rides and their observations for one line."""
        return await self._fetch(
            "gaps_list",
            f"{self.settings.gaps_api_base_url}/gaps/list",
            {
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "operator_ref": operator_id,
                "line_ref": line_ref,
            },
            map_gap_records,
        )

    async def fetch_routes(
        self, date_from: date, date_to: date, operator_id: str, line_number: str
    ) -> list[BusRoute]:
        """Fetch the GTFS route variants of a line published in the date range."""
        return await self._fetch(
            "gtfs_routes_list",
            f"{self.settings.stride_api_base_url}/gtfs_routes/list",
            {
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "operator_refs": operator_id,
                "route_short_name": line_number,
                "limit": self.settings.routes_list_limit,
            },
            map_routes,
        )

    async def _fetch(
        self,
        endpoint: str,
        url: str,
        params: dict[str, Any],
        mapper: Callable[[Any], T],
    ) -> T:
        start = time.perf_counter()
        with upstream_span(endpoint, params):
            try:
                response = await self.client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                observe_upstream_request(endpoint, "error", time.perf_counter() - start)
                raise FetchFailure(
                    f"{endpoint} answered HTTP {exc.response.status_code}"
                ) from exc
            except httpx.HTTPError as exc:
                observe_upstream_request(endpoint, "error", time.perf_counter() - start)
                raise FetchFailure(f"Failed to reach {endpoint}: {exc}") from exc

            try:
                payload = response.json()
            except ValueError as exc:
                observe_upstream_request(
                    endpoint, "decode_error", time.perf_counter() - start
                )
                raise DecodeFailure(f"{endpoint} returned invalid JSON") from exc

            try:
                result = mapper(payload)
            except DecodeFailure:
                observe_upstream_request(
                    endpoint, "decode_error", time.perf_counter() - start
                )
                raise

        observe_upstream_request(endpoint, "success", time.perf_counter() - start)
        logger.debug("Fetched %s with params %s", endpoint, params)
        return result
