"""
Gap models: raw planned/observed ride pairs and their hourly aggregates.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class GapRecord:
    """A scheduled ride and its observation, if one was recorded."""

    gtfs_time: datetime | None
    siri_time: datetime | None = None

    @property
    def observed(self) -> bool:
        return self.siri_time is not None


@dataclass(frozen=True)
class HourlyBucket:
    """Planned vs. observed ride counts for one ``HH:mm`` key."""

    hour: str
    planned_count: int = 0
    actual_count: int = 0


class Severity(str, enum.Enum):
    """How badly a bucket misses its schedule."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def color(self) -> str:
        return _SEVERITY_COLORS[self]


_SEVERITY_COLORS = {
    Severity.LOW: "green",
    Severity.MEDIUM: "orange",
    Severity.HIGH: "red",
}


class HourlyGapEntry(BaseModel):
    """One chart row."""

    model_config = ConfigDict(populate_by_name=True)

    hour: str = Field(..., description="Planned departure time bucket (HH:mm).")
    planned_rides: int = Field(..., ge=0, alias="plannedRides")
    actual_rides: int = Field(..., ge=0, alias="actualRides")
    severity: Severity
    color: str


class HourlyGapsResponse(BaseModel):
    """Hourly planned vs. observed rides for the selected line."""

    model_config = ConfigDict(populate_by_name=True)

    date_from: date = Field(..., alias="dateFrom")
    date_to: date = Field(..., alias="dateTo")
    operator_id: str = Field(..., alias="operatorId")
    line_ref: int | None = Field(None, alias="lineRef")
    buckets: list[HourlyGapEntry] = Field(default_factory=list)
    max_rides: int = Field(0, ge=0, alias="maxRides")
    stale: bool = Field(
        False, description="True when the buckets belong to an earlier query."
    )
