"""Pure mapping utilities for Open Bus payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from gapwatch.models.gaps import GapRecord
from gapwatch.models.search import BusRoute
from gapwatch.services.open_bus_errors import DecodeFailure


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise DecodeFailure(f"Expected ISO timestamp string, got {type(value).__name__}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DecodeFailure(f"Invalid timestamp '{value}'") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _expect_rows(payload: Any, endpoint: str) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise DecodeFailure(f"Expected a JSON list from {endpoint}")
    for row in payload:
        if not isinstance(row, dict):
            raise DecodeFailure(f"Expected JSON objects in {endpoint} response")
    return payload


def map_gap_record(data: dict[str, Any]) -> GapRecord:
    """Map a raw gap row to a GapRecord."""
    return GapRecord(
        gtfs_time=parse_timestamp(data.get("gtfs_start_time")),
        siri_time=parse_timestamp(data.get("siri_start_time")),
    )


def map_gap_records(payload: Any) -> list[GapRecord]:
    """Map the gaps list payload, rejecting anything that is not a list of rows."""
    return [map_gap_record(row) for row in _expect_rows(payload, "gaps/list")]


def route_key(data: dict[str, Any]) -> str:
    """Key under which GTFS route rows of the same route variant are grouped."""
    return f"{data.get('route_mkt')}-{data.get('route_direction')}-{data.get('route_alternative')}"


def map_routes(payload: Any) -> list[BusRoute]:
    """Group GTFS route rows into BusRoute records, keeping first-seen order."""
    grouped: dict[str, list[dict[str, Any]]] = {}
    for row in _expect_rows(payload, "gtfs_routes/list"):
        if row.get("line_ref") is None:
            continue
        grouped.setdefault(route_key(row), []).append(row)

    routes: list[BusRoute] = []
    for key, rows in grouped.items():
        try:
            line_refs = tuple(dict.fromkeys(int(row["line_ref"]) for row in rows))
        except (TypeError, ValueError) as exc:
            raise DecodeFailure(f"Invalid line_ref for route '{key}'") from exc
        first = rows[0]
        try:
            route = BusRoute(
                key=key,
                line_ref=line_refs[0],
                line_refs=line_refs,
                route_short_name=first.get("route_short_name"),
                route_long_name=first.get("route_long_name"),
                agency_name=first.get("agency_name"),
            )
        except ValidationError as exc:
            raise DecodeFailure(f"Invalid fields for route '{key}': {exc}") from exc
        routes.append(route)
    return routes


__all__ = [
    "parse_timestamp",
    "map_gap_record",
    "map_gap_records",
    "map_routes",
    "route_key",
]
