from datetime import datetime, timezone
from pydantic import BaseModel, Field


class RouteSignature(BaseModel):
    """Comparable fingerprint of a simplified GPS path."""

    start_geohash: str = Field(..., description="Geohash of the first simplified point")
    end_geohash: str = Field(..., description="Geohash of the last simplified point")
    path_cells: list[str] = Field(default_factory=list, description="Sorted, unique geohash cells covering the simplified path")
    route_key: str = Field(..., description="Content hash of start, end and path cells")


class Route(BaseModel):
    """A physical route an athlete runs repeatedly."""

    route_id: str = Field(..., description="Unique route identifier")
    athlete_id: int = Field(..., description="Athlete ID who owns this route")
    route_key: str
    start_geohash: str
    end_geohash: str
    path_cells: list[str] = Field(default_factory=list)
    representative_polyline: str | None = Field(None, description="Encoded polyline of the first run, for display")
    distance_m: float | None = Field(None, description="Length of the first run's track in meters")
    run_count: int = Field(default=1, description="Number of activities matched to this route")
    last_run_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def signature(self) -> RouteSignature:
        """Rebuild the route signature from the persisted fields."""
        return RouteSignature(
            start_geohash=self.start_geohash,
            end_geohash=self.end_geohash,
            path_cells=self.path_cells,
            route_key=self.route_key
        )


class ActivityRouteMap(BaseModel):
    """Association between an activity and the route it was matched to."""

    activity_id: int = Field(..., description="Strava activity ID")
    route_id: str = Field(..., description="Matched route ID")
    athlete_id: int = Field(..., description="Athlete ID who owns the activity")
    match_confidence: float = Field(..., description="Similarity at match time, 1.0 for a new route")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RouteMatchResult(BaseModel):
    """Outcome of matching an activity against an athlete's routes."""
    route_id: str
    is_new_route: bool
    match_confidence: float


class RouteHistoryEntry(BaseModel):
    """Display projection of an activity run on a route."""
    activity_id: int
    name: str
    start_date: datetime
    distance: float
    moving_time: int
    average_speed: float | None = None
    average_heartrate: float | None = None
    total_elevation_gain: float | None = None


class ActivityRouteResponse(BaseModel):
    """Route of an activity together with the route's run history."""
    route: Route
    history: list[RouteHistoryEntry]


class RouteAssignmentResponse(BaseModel):
    """Response model for a route assignment request."""
    activity_id: int
    assigned: bool
