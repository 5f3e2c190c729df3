"""
Gaps patterns endpoint.

Aggregates planned vs. observed rides of the session's selected route into
HH:mm buckets, each classified by how many of its rides were missed.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from gapwatch.api.v1.shared.dependencies import get_date_range, get_search_session
from gapwatch.models.gaps import HourlyBucket, HourlyGapEntry, HourlyGapsResponse
from gapwatch.services.hourly_gaps import GapQuery, max_rides
from gapwatch.services.miss_classifier import classify
from gapwatch.services.search_session import SearchSession

router = APIRouter()


def _to_entry(bucket: HourlyBucket) -> HourlyGapEntry:
    severity = classify(bucket.planned_count, bucket.actual_count)
    return HourlyGapEntry(
        hour=bucket.hour,
        planned_rides=bucket.planned_count,
        actual_rides=bucket.actual_count,
        severity=severity,
        color=severity.color,
    )


@router.get(
    "/hourly",
    response_model=HourlyGapsResponse,
    summary="Get hourly gaps for the selected route",
    description=(
        "Counts planned and observed rides of the selected route per planned "
        "departure time. When the upstream fetch fails the last successful "
        "result is returned with `stale` set."
    ),
)
async def get_hourly_gaps(
    session: SearchSession = Depends(get_search_session),
    date_range: tuple[date, date] = Depends(get_date_range),
) -> HourlyGapsResponse:
    date_from, date_to = date_range
    await session.route_resolver.ensure(date_from, date_to)
    state = session.search
    route = state.selected_route()

    if not state.operator_id or route is None:
        session.aggregator.reset()
        return HourlyGapsResponse(
            date_from=date_from,
            date_to=date_to,
            operator_id=state.operator_id,
        )

    buckets = await session.aggregator.refresh(
        date_from, date_to, state.operator_id, route.line_ref
    )
    requested = GapQuery(date_from, date_to, state.operator_id, route.line_ref)
    return HourlyGapsResponse(
        date_from=date_from,
        date_to=date_to,
        operator_id=state.operator_id,
        line_ref=route.line_ref,
        buckets=[_to_entry(bucket) for bucket in buckets],
        max_rides=max_rides(buckets),
        stale=session.aggregator.buckets_query != requested,
    )
