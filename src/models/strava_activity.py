import json
from datetime import datetime, timezone
from typing import Any
from pydantic import BaseModel, Field


class StravaActivityRecord(BaseModel):
    """Strava activity as stored in the database by the sync pipeline."""

    athlete_id: int = Field(..., description="Athlete ID who owns this activity")
    activity_id: int = Field(..., description="Strava activity ID")
    name: str = Field(default="", description="Activity title")
    sport_type: str | None = Field(None, description="Strava sport type (Run, TrailRun, ...)")
    start_date: datetime = Field(..., description="Activity start time")
    distance: float = Field(default=0.0, description="Distance in meters")
    moving_time: int = Field(default=0, description="Moving time in seconds")
    average_speed: float | None = Field(None, description="Average speed in m/s")
    average_heartrate: float | None = None
    total_elevation_gain: float | None = None
    summary_polyline: str | None = Field(None, description="Summary-resolution encoded polyline")
    detailed_polyline: str | None = Field(None, description="Full-resolution encoded polyline")
    streams_data: str | None = Field(None, description="JSON-serialized activity streams (latlng, ...)")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_strava(
        cls,
        athlete_id: int,
        data: dict[str, Any],
        streams: dict[str, Any] | list[Any] | None = None
    ) -> "StravaActivityRecord":
        """
        Build a record from a Strava API activity payload.

        Args:
            athlete_id: Athlete ID who owns the activity
            data: Activity JSON as returned by the Strava API
            streams: Optional streams payload for the activity

        Returns:
            StravaActivityRecord
        """
        map_data = data.get('map') or {}
        if not isinstance(map_data, dict):
            map_data = {}

        return cls(
            athlete_id=athlete_id,
            activity_id=data['id'],
            name=data.get('name', ''),
            sport_type=data.get('sport_type', data.get('type')),
            start_date=datetime.fromisoformat(data['start_date'].replace('Z', '+00:00')),
            distance=data.get('distance', 0.0),
            moving_time=data.get('moving_time', 0),
            average_speed=data.get('average_speed'),
            average_heartrate=data.get('average_heartrate'),
            total_elevation_gain=data.get('total_elevation_gain'),
            summary_polyline=map_data.get('summary_polyline') or None,
            detailed_polyline=map_data.get('polyline') or None,
            streams_data=json.dumps(streams) if streams else None
        )

    @property
    def best_polyline(self) -> str | None:
        """Highest-resolution polyline available."""
        return self.detailed_polyline or self.summary_polyline
