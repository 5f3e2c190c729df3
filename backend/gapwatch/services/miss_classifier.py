"""Severity of missed rides within an hourly bucket."""

from __future__ import annotations

from gapwatch.models.gaps import Severity

# Upper bounds (inclusive) of the miss percentage for each tier.
LOW_MISS_THRESHOLD = 5.0
MEDIUM_MISS_THRESHOLD = 50.0


def miss_rate(planned: int, actual: int) -> float:
    """Percentage of planned rides that were never observed."""
    if planned <= 0:
        return 0.0
    return (planned - actual) / planned * 100


def classify(planned: int, actual: int) -> Severity:
    """Classify a planned/observed pair; an empty bucket has nothing to report."""
    rate = miss_rate(planned, actual)
    if rate <= LOW_MISS_THRESHOLD:
        return Severity.LOW
    if rate <= MEDIUM_MISS_THRESHOLD:
        return Severity.MEDIUM
    return Severity.HIGH


__all__ = ["classify", "miss_rate", "LOW_MISS_THRESHOLD", "MEDIUM_MISS_THRESHOLD"]
