"""
Search state models.

The search state is the single "current query" of a dashboard session
(operator, line, route and selected time). It is serialized with camelCase
keys because the same names are used in page URLs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BusRoute(BaseModel):
    """A resolved route variant of a line."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., description="Route key: '{route_mkt}-{direction}-{alternative}'.")
    line_ref: int = Field(..., alias="lineRef", description="SIRI line reference.")
    line_refs: tuple[int, ...] = Field(
        default=(),
        alias="lineRefs",
        description="Every line reference grouped under this route key.",
    )
    route_short_name: str | None = Field(None, alias="routeShortName")
    route_long_name: str | None = Field(None, alias="routeLongName")
    agency_name: str | None = Field(None, alias="agencyName")


class SearchState(BaseModel):
    """Immutable snapshot of a session's current query.

    Mutation goes through ``SearchStateStore.update`` only; every update
    produces a new instance.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: int = Field(..., description="Selected time, ms since epoch.")
    operator_id: str = Field("", alias="operatorId")
    line_number: str = Field("", alias="lineNumber")
    route_key: str = Field("", alias="routeKey")
    routes: tuple[BusRoute, ...] | None = Field(
        None,
        description="Resolved routes; null while unresolved, empty when none found.",
    )

    def selected_route(self) -> BusRoute | None:
        """Return the route matching ``route_key``; unmatched keys select nothing."""
        if not self.route_key or not self.routes:
            return None
        for route in self.routes:
            if route.key == self.route_key:
                return route
        return None

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SearchStateUpdate(BaseModel):
    """Partial update submitted by the operator/line/route/date pickers."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    timestamp: int | None = Field(None, gt=0)
    operator_id: str | None = Field(None, alias="operatorId")
    line_number: str | None = Field(None, alias="lineNumber")
    route_key: str | None = Field(None, alias="routeKey")


class SearchStateResponse(BaseModel):
    """Current search state as exposed to the UI layer."""

    model_config = ConfigDict(populate_by_name=True)

    search: SearchState
    routes_loading: bool = Field(False, alias="routesLoading")


class RouteResolutionResponse(BaseModel):
    """Outcome of an explicit route resolution request."""

    model_config = ConfigDict(populate_by_name=True)

    outcome: str
    search: SearchState
    routes_loading: bool = Field(False, alias="routesLoading")


class PageView(BaseModel):
    """Payload returned for a dashboard page whose URL is already canonical."""

    model_config = ConfigDict(populate_by_name=True)

    page: str
    label: str
    search_params_required: bool = Field(False, alias="searchParamsRequired")
    search: SearchState
