"""Tests for the hourly gaps endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gapwatch.models.gaps import GapRecord
from gapwatch.services.open_bus_errors import FetchFailure

RANGE = "date_from=2024-01-01&date_to=2024-01-07"


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 1, hour, minute, tzinfo=timezone.utc)


@pytest.fixture()
def selected_route(api_client, fake_source, sample_routes):
    fake_source.routes = sample_routes
    api_client.patch(
        "/api/v1/search",
        json={"operatorId": "3", "lineNumber": "17", "routeKey": "10017-1-0"},
    )
    return sample_routes[0]


def test_no_selection_returns_empty_chart(api_client, fake_source):
    response = api_client.get(f"/api/v1/gaps/hourly?{RANGE}")

    assert response.status_code == 200
    body = response.json()
    assert body["buckets"] == []
    assert body["maxRides"] == 0
    assert body["lineRef"] is None
    assert fake_source.gap_calls == []


def test_hourly_buckets_are_classified(api_client, fake_source, selected_route):
    fake_source.gaps = [
        GapRecord(gtfs_time=at(8), siri_time=at(8, 1)),
        GapRecord(gtfs_time=at(8), siri_time=None),
        GapRecord(gtfs_time=at(9), siri_time=at(9, 2)),
        GapRecord(gtfs_time=None, siri_time=at(10)),
    ]

    response = api_client.get(f"/api/v1/gaps/hourly?{RANGE}")

    assert response.status_code == 200
    body = response.json()
    assert body["lineRef"] == selected_route.line_ref
    assert body["operatorId"] == "3"
    assert body["dateFrom"] == "2024-01-01"
    assert body["maxRides"] == 2
    assert body["stale"] is False
    assert body["buckets"] == [
        {
            "hour": "08:00",
            "plannedRides": 2,
            "actualRides": 1,
            "severity": "medium",
            "color": "orange",
        },
        {
            "hour": "09:00",
            "plannedRides": 1,
            "actualRides": 1,
            "severity": "low",
            "color": "green",
        },
    ]
    assert fake_source.gap_calls[-1][2:] == ("3", selected_route.line_ref)


def test_failed_fetch_returns_previous_buckets_marked_stale(
    api_client, fake_source, selected_route
):
    fake_source.gaps = [GapRecord(gtfs_time=at(8), siri_time=None)]
    api_client.get(f"/api/v1/gaps/hourly?{RANGE}")
    fake_source.gaps_error = FetchFailure("upstream down")

    response = api_client.get("/api/v1/gaps/hourly?date_from=2024-01-02&date_to=2024-01-08")

    body = response.json()
    assert response.status_code == 200
    assert body["stale"] is True
    assert [bucket["hour"] for bucket in body["buckets"]] == ["08:00"]
    assert body["buckets"][0]["severity"] == "high"


def test_unmatched_route_key_clears_chart(api_client, fake_source, selected_route):
    fake_source.gaps = [GapRecord(gtfs_time=at(8), siri_time=None)]
    api_client.get(f"/api/v1/gaps/hourly?{RANGE}")
    api_client.patch("/api/v1/search", json={"routeKey": "missing"})

    response = api_client.get(f"/api/v1/gaps/hourly?{RANGE}")

    assert response.json()["buckets"] == []
    assert len(fake_source.gap_calls) == 1


def test_range_longer_than_limit_is_rejected(api_client, selected_route):
    response = api_client.get("/api/v1/gaps/hourly?date_from=2024-01-01&date_to=2024-06-01")

    assert response.status_code == 422


def test_shared_link_loads_routes_and_chart(api_client, fake_source, sample_routes):
    fake_source.routes = sample_routes
    fake_source.gaps = [
        GapRecord(gtfs_time=at(8), siri_time=at(8, 1)),
        GapRecord(gtfs_time=at(8), siri_time=None),
    ]
    link = (
        "/gaps?timestamp=1700000000000&operatorId=3&lineNumber=17"
        "&routeKey=10017-1-0"
    )
    page = api_client.get(link)
    assert page.status_code == 200

    response = api_client.get(f"/api/v1/gaps/hourly?{RANGE}")

    body = response.json()
    assert fake_source.route_calls[0][2:] == ("3", "17")
    assert body["lineRef"] == sample_routes[0].line_ref
    assert body["buckets"] == [
        {
            "hour": "08:00",
            "plannedRides": 2,
            "actualRides": 1,
            "severity": "medium",
            "color": "orange",
        }
    ]
    assert fake_source.gap_calls[-1][2:] == ("3", sample_routes[0].line_ref)
