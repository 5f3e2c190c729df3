"""Input validation utilities for gap analysis endpoints."""

from __future__ import annotations

from datetime import date, timedelta

MAX_RANGE_DAYS = 90


def default_date_range(today: date, lookback_days: int) -> tuple[date, date]:
    """Last ``lookback_days`` days, ending yesterday."""
    return today - timedelta(days=lookback_days), today - timedelta(days=1)


def resolve_date_range(
    date_from: date | None,
    date_to: date | None,
    *,
    today: date,
    lookback_days: int,
) -> tuple[date, date]:
    """Fill in missing bounds from the default range and validate the result."""
    default_from, default_to = default_date_range(today, lookback_days)
    date_from = date_from or default_from
    date_to = date_to or default_to

    if date_from > date_to:
        raise ValueError("'date_from' must not be after 'date_to'")
    if (date_to - date_from).days > MAX_RANGE_DAYS:
        raise ValueError(f"Date range must not exceed {MAX_RANGE_DAYS} days")
    return date_from, date_to
