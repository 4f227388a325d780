"""Shared pytest fixtures and in-memory repository doubles.

The doubles mirror the contracts of the MongoDB repositories, including the
unique indexes on (athlete_id, route_key) and on mapped activity IDs.
"""
from __future__ import annotations

import json
import random
from datetime import datetime, timezone

import pytest
from pymongo.errors import DuplicateKeyError

from clients.strava.polyline import Point, encode_polyline
from models.route import ActivityRouteMap, Route, RouteHistoryEntry
from models.strava_activity import StravaActivityRecord
from models.task import Task, TaskStatus
from services.route_clustering import RouteClusteringService, RouteLockRegistry

ATHLETE_ID = 42


class InMemoryRouteRepository:
    def __init__(self):
        self.routes: dict[str, Route] = {}
        self.mappings: dict[int, ActivityRouteMap] = {}
        self.writes = 0

    async def get_routes_for_athlete(self, athlete_id: int) -> list[Route]:
        owned = [r for r in self.routes.values() if r.athlete_id == athlete_id]
        return sorted(owned, key=lambda r: r.run_count, reverse=True)

    async def get_route(self, route_id: str) -> Route | None:
        return self.routes.get(route_id)

    async def get_route_by_key(self, athlete_id: int, route_key: str) -> Route | None:
        for route in self.routes.values():
            if route.athlete_id == athlete_id and route.route_key == route_key:
                return route
        return None

    async def create_route(self, route: Route) -> Route:
        if await self.get_route_by_key(route.athlete_id, route.route_key):
            raise DuplicateKeyError("E11000 duplicate key error collection: routes")
        self.writes += 1
        self.routes[route.route_id] = route
        return route

    async def delete_route(self, route_id: str) -> bool:
        return self.routes.pop(route_id, None) is not None

    async def record_route_run(self, route_id: str, run_at: datetime | None = None) -> Route | None:
        route = self.routes.get(route_id)
        if route is None:
            return None
        self.writes += 1
        updated = route.model_copy(update={
            "run_count": route.run_count + 1,
            "last_run_at": run_at or datetime.now(timezone.utc),
        })
        self.routes[route_id] = updated
        return updated

    async def create_mapping(self, mapping: ActivityRouteMap) -> ActivityRouteMap:
        if mapping.activity_id in self.mappings:
            raise DuplicateKeyError("E11000 duplicate key error collection: activity_route_map")
        self.writes += 1
        self.mappings[mapping.activity_id] = mapping
        return mapping

    async def get_mapping(self, activity_id: int) -> ActivityRouteMap | None:
        return self.mappings.get(activity_id)

    async def get_mappings_for_route(self, route_id: str) -> list[ActivityRouteMap]:
        found = [m for m in self.mappings.values() if m.route_id == route_id]
        return sorted(found, key=lambda m: m.created_at, reverse=True)


class InMemoryActivityRepository:
    def __init__(self):
        self.activities: dict[int, StravaActivityRecord] = {}

    async def store_activity(self, activity: StravaActivityRecord) -> bool:
        self.activities[activity.activity_id] = activity
        return True

    async def get_activity(self, activity_id: int) -> StravaActivityRecord | None:
        return self.activities.get(activity_id)

    async def get_activities_by_ids(self, activity_ids: list[int], limit: int | None = None) -> list[RouteHistoryEntry]:
        found = [self.activities[a] for a in activity_ids if a in self.activities]
        found.sort(key=lambda a: a.start_date, reverse=True)
        if limit is not None:
            found = found[:limit]
        return [
            RouteHistoryEntry(**a.model_dump(include=set(RouteHistoryEntry.model_fields)))
            for a in found
        ]

    async def get_activity_ids_for_athlete(self, athlete_id: int) -> list[int]:
        owned = [a for a in self.activities.values() if a.athlete_id == athlete_id]
        return [a.activity_id for a in sorted(owned, key=lambda a: a.start_date)]


class InMemoryTaskRepository:
    def __init__(self):
        self.tasks: dict[str, Task] = {}

    async def create_task(self, task: Task) -> Task:
        self.tasks[task.task_id] = task
        return task

    async def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    async def get_tasks_by_athlete(self, athlete_id: int, limit: int = 50, status: TaskStatus | None = None) -> list[Task]:
        found = [
            t for t in self.tasks.values()
            if t.athlete_id == athlete_id and (status is None or t.status == status)
        ]
        return sorted(found, key=lambda t: t.created_at, reverse=True)[:limit]

    async def _update(self, task_id: str, **fields) -> bool:
        task = self.tasks.get(task_id)
        if task is None:
            return False
        self.tasks[task_id] = task.model_copy(update=fields)
        return True

    async def update_task_status(self, task_id: str, status: TaskStatus, error: str | None = None) -> bool:
        now = datetime.now(timezone.utc)
        fields: dict = {"status": status}
        if status == TaskStatus.RUNNING:
            fields["started_at"] = now
        elif status in (TaskStatus.COMPLETED, TaskStatus.FAILED):
            fields["completed_at"] = now
        if error:
            fields["error"] = error
        return await self._update(task_id, **fields)

    async def update_task_progress(self, task_id: str, progress: float) -> bool:
        return await self._update(task_id, progress=progress)

    async def update_task_result(self, task_id: str, result: dict) -> bool:
        return await self._update(task_id, result=result)

    async def delete_task(self, task_id: str) -> bool:
        return self.tasks.pop(task_id, None) is not None


# --- Track factories ---------------------------------------------------
# Both loop tracks lie well inside one 5-character geohash cell
# (lat 51.45996..51.50391, lon -0.13184..-0.08789).
def make_loop_points(jitter: float = 0.0, seed: int = 0) -> list[Point]:
    """Roughly 2 km out-and-back run, 50 points."""
    rng = random.Random(seed)
    turnaround = (51.4810, -0.1100)
    start = (51.4750, -0.1200)
    bend = (51.4790, -0.1180)

    outbound = []
    for i in range(13):
        t = i / 13
        outbound.append((start[0] + (bend[0] - start[0]) * t, start[1] + (bend[1] - start[1]) * t))
    for i in range(1, 13):
        t = i / 12
        outbound.append((bend[0] + (turnaround[0] - bend[0]) * t, bend[1] + (turnaround[1] - bend[1]) * t))
    track = outbound + list(reversed(outbound))

    return [
        Point(lat=lat + rng.uniform(-jitter, jitter), lon=lon + rng.uniform(-jitter, jitter))
        for lat, lon in track
    ]


def make_cross_town_points() -> list[Point]:
    """Roughly 5 km straight run east of the meridian, 50 points."""
    return [Point(lat=51.5200, lon=0.0100 + 0.0014 * i) for i in range(50)]


def streams_for(points: list[Point]) -> dict:
    return {"latlng": {"data": [[p.lat, p.lon] for p in points]}}


def make_activity(
    activity_id: int,
    start_date: datetime,
    points: list[Point] | None = None,
    use_streams: bool = False,
    athlete_id: int = ATHLETE_ID,
    **overrides
) -> StravaActivityRecord:
    fields = dict(
        athlete_id=athlete_id,
        activity_id=activity_id,
        name=f"Run {activity_id}",
        sport_type="Run",
        start_date=start_date,
        distance=2000.0,
        moving_time=600,
        average_speed=3.3,
        average_heartrate=145.0,
        total_elevation_gain=12.0,
    )
    if points is not None:
        if use_streams:
            fields["streams_data"] = json.dumps(streams_for(points))
        else:
            fields["detailed_polyline"] = encode_polyline(points)
    fields.update(overrides)
    return StravaActivityRecord(**fields)


# --- Fixtures ----------------------------------------------------------
@pytest.fixture
def route_repo():
    return InMemoryRouteRepository()


@pytest.fixture
def activity_repo():
    return InMemoryActivityRepository()


@pytest.fixture
def task_repo():
    return InMemoryTaskRepository()


@pytest.fixture
def route_service(route_repo, activity_repo):
    return RouteClusteringService(
        route_repo,
        activity_repo,
        match_threshold=0.7,
        min_points=10,
        locks=RouteLockRegistry()
    )
