"""
Hourly gap aggregation.

Reduces planned/observed ride pairs into ``HH:mm`` buckets for the gaps
patterns chart. The reduction itself is a pure function; the aggregator
object only adds request tagging and keeps the last good result so a
transient upstream failure does not blank the chart.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, tzinfo
from typing import NamedTuple

from gapwatch.core.metrics import record_stale_response
from gapwatch.models.gaps import GapRecord, HourlyBucket
from gapwatch.services.open_bus_client import GapSource
from gapwatch.services.open_bus_errors import GapDataError, StaleResponse

logger = logging.getLogger(__name__)

_BUCKET_FORMAT = "%H:%M"


class GapQuery(NamedTuple):
    """Inputs a gap fetch was issued for."""

    date_from: date
    date_to: date
    operator_ref: str
    line_ref: int


def bucket_key(record: GapRecord, tz: tzinfo) -> str:
    """Planned time of a schedule-anchored ``record`` in ``tz``, truncated to the minute."""
    return record.gtfs_time.astimezone(tz).strftime(_BUCKET_FORMAT)


def aggregate_hourly(records: Iterable[GapRecord], tz: tzinfo) -> list[HourlyBucket]:
    """Count planned and observed rides per bucket, sorted by bucket key.

    Records without a planned time are not schedule-anchored and are skipped,
    whether or not they were observed.
    """
    counts: dict[str, list[int]] = {}
    for record in records:
        if record.gtfs_time is None:
            continue
        entry = counts.setdefault(bucket_key(record, tz), [0, 0])
        entry[0] += 1
        if record.observed:
            entry[1] += 1

    # HH:mm is zero-padded and fixed width, so string order is time order.
    return [
        HourlyBucket(hour=hour, planned_count=planned, actual_count=actual)
        for hour, (planned, actual) in sorted(counts.items())
    ]


def max_rides(buckets: Iterable[HourlyBucket]) -> int:
    """Upper bound of the chart's ride axis."""
    return max(
        (max(bucket.planned_count, bucket.actual_count) for bucket in buckets),
        default=0,
    )


class HourlyGapAggregator:
    """Fetches gaps for a query and keeps the most recent good buckets."""

    def __init__(self, source: GapSource, tz: tzinfo) -> None:
        self._source = source
        self._tz = tz
        self._generation = 0
        self._buckets: tuple[HourlyBucket, ...] = ()
        self._buckets_query: GapQuery | None = None

    @property
    def buckets(self) -> list[HourlyBucket]:
        return list(self._buckets)

    @property
    def buckets_query(self) -> GapQuery | None:
        """The query the current buckets were computed for."""
        return self._buckets_query

    def reset(self) -> None:
        """Drop current buckets and invalidate any fetch still in flight."""
        self._generation += 1
        self._buckets = ()
        self._buckets_query = None

    async def refresh(
        self,
        date_from: date,
        date_to: date,
        operator_ref: str,
        line_ref: int,
    ) -> list[HourlyBucket]:
        """Fetch and aggregate gaps for the query.

        On failure the previous buckets are kept. A response that arrives
        after a newer refresh was issued is discarded.
        """
        query = GapQuery(date_from, date_to, operator_ref, line_ref)
        self._generation += 1
        generation = self._generation

        try:
            records = await self._source.fetch_gaps(
                date_from, date_to, operator_ref, line_ref
            )
            if generation != self._generation:
                raise StaleResponse(f"Gap response for {query} was superseded")
        except StaleResponse as exc:
            record_stale_response("gaps")
            logger.debug("%s", exc)
            return self.buckets
        except GapDataError as exc:
            logger.warning(
                "Error fetching gaps for operator %s line %s (%s - %s): %s",
                operator_ref,
                line_ref,
                date_from,
                date_to,
                exc,
            )
            return self.buckets

        self._buckets = tuple(aggregate_hourly(records, self._tz))
        self._buckets_query = query
        return self.buckets


__all__ = [
    "GapQuery",
    "HourlyGapAggregator",
    "aggregate_hourly",
    "bucket_key",
    "max_rides",
]
