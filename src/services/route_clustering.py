"""
Route clustering service.

Groups an athlete's GPS activities into physical routes. New activities are
matched against the athlete's existing routes by signature similarity, and a
new route is registered when none is similar enough.
"""
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pymongo.errors import DuplicateKeyError

from clients.strava.polyline import Point, encode_polyline, path_length
from clustering.points import decode_polyline_to_points, extract_points_from_streams
from clustering.signature import generate_route_signature
from clustering.similarity import calculate_route_similarity
from config import settings
from database.activity_repository import ActivityRepository
from database.route_repository import RouteRepository
from models.route import (
    ActivityRouteMap,
    ActivityRouteResponse,
    Route,
    RouteHistoryEntry,
    RouteMatchResult,
    RouteSignature,
)

logger = logging.getLogger(__name__)


class RouteLockRegistry:
    """Per-athlete locks serializing route matching and registration."""

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}

    def for_athlete(self, athlete_id: int) -> asyncio.Lock:
        lock = self._locks.get(athlete_id)
        if lock is None:
            lock = self._locks[athlete_id] = asyncio.Lock()
        return lock


# Shared by every service instance in this process
ROUTE_LOCKS = RouteLockRegistry()


class RouteClusteringService:
    """Service for matching activities to routes and reading route history."""

    def __init__(
        self,
        route_repo: RouteRepository,
        activity_repo: ActivityRepository,
        match_threshold: float | None = None,
        min_points: int | None = None,
        locks: RouteLockRegistry | None = None
    ):
        """
        Initialize route clustering service.

        Args:
            route_repo: Repository for routes and activity mappings
            activity_repo: Repository for stored activities
            match_threshold: Minimum similarity to reuse a route (defaults to settings)
            min_points: Minimum GPS points needed to build a route (defaults to settings)
            locks: Lock registry, defaults to the process-wide registry
        """
        self.route_repo = route_repo
        self.activity_repo = activity_repo
        self.match_threshold = settings.route_match_threshold if match_threshold is None else match_threshold
        self.min_points = settings.route_min_points if min_points is None else min_points
        self.locks = locks or ROUTE_LOCKS

    def _select_points(self, polyline: str | None, streams: Any) -> list[Point]:
        """Pick the GPS track to match on, preferring streams over the polyline."""
        points: list[Point] = []
        if streams:
            points = extract_points_from_streams(streams)

        if len(points) < self.min_points and polyline:
            points = decode_polyline_to_points(polyline)

        return points

    async def find_or_create_route(
        self,
        athlete_id: int,
        activity_id: int,
        polyline: str | None,
        streams: Any
    ) -> RouteMatchResult | None:
        """
        Match an activity to one of the athlete's routes, or register a new route.

        Does not check whether the activity already has a mapping; use
        assign_route_to_activity for idempotent assignment.

        Args:
            athlete_id: Athlete ID who owns the activity
            activity_id: Strava activity ID
            polyline: Encoded polyline of the activity, if any
            streams: Streams payload with a latlng series, if any

        Returns:
            RouteMatchResult, or None if the activity lacks usable GPS data
        """
        async with self.locks.for_athlete(athlete_id):
            return await self._find_or_create_route(athlete_id, activity_id, polyline, streams)

    async def _find_or_create_route(
        self,
        athlete_id: int,
        activity_id: int,
        polyline: str | None,
        streams: Any
    ) -> RouteMatchResult | None:
        points = self._select_points(polyline, streams)
        if len(points) < self.min_points:
            logger.debug(f"Activity {activity_id} has {len(points)} GPS points, skipping route matching")
            return None

        signature = generate_route_signature(points)
        if signature is None:
            return None

        existing_routes = await self.route_repo.get_routes_for_athlete(athlete_id)

        best_route: Route | None = None
        best_similarity = 0.0
        for route in existing_routes:
            similarity = calculate_route_similarity(signature, route.signature())
            if similarity >= self.match_threshold and similarity > best_similarity:
                best_route = route
                best_similarity = similarity

        if best_route:
            return await self._record_match(athlete_id, activity_id, best_route.route_id, best_similarity)

        return await self._register_route(athlete_id, activity_id, signature, polyline, points)

    async def _record_match(
        self,
        athlete_id: int,
        activity_id: int,
        route_id: str,
        similarity: float
    ) -> RouteMatchResult:
        # A duplicate mapping must leave run_count untouched
        await self.route_repo.create_mapping(ActivityRouteMap(
            activity_id=activity_id,
            route_id=route_id,
            athlete_id=athlete_id,
            match_confidence=similarity
        ))
        await self.route_repo.record_route_run(route_id)

        logger.info(f"Matched activity {activity_id} to route {route_id} (similarity {similarity:.2f})")
        return RouteMatchResult(route_id=route_id, is_new_route=False, match_confidence=similarity)

    async def _register_route(
        self,
        athlete_id: int,
        activity_id: int,
        signature: RouteSignature,
        polyline: str | None,
        points: list[Point]
    ) -> RouteMatchResult:
        route = Route(
            route_id=str(uuid.uuid4()),
            athlete_id=athlete_id,
            route_key=signature.route_key,
            start_geohash=signature.start_geohash,
            end_geohash=signature.end_geohash,
            path_cells=signature.path_cells,
            representative_polyline=polyline or encode_polyline(points),
            distance_m=path_length(points),
            run_count=1,
            last_run_at=datetime.now(timezone.utc)
        )

        try:
            await self.route_repo.create_route(route)
        except DuplicateKeyError:
            # Another process registered an identical signature first
            existing = await self.route_repo.get_route_by_key(athlete_id, signature.route_key)
            if existing is None:
                raise
            logger.info(f"Route key {signature.route_key} already registered for athlete {athlete_id}")
            return await self._record_match(athlete_id, activity_id, existing.route_id, 1.0)

        try:
            await self.route_repo.create_mapping(ActivityRouteMap(
                activity_id=activity_id,
                route_id=route.route_id,
                athlete_id=athlete_id,
                match_confidence=1.0
            ))
        except DuplicateKeyError:
            # Activity already mapped elsewhere, remove the orphaned route
            await self.route_repo.delete_route(route.route_id)
            raise

        logger.info(f"Registered route {route.route_id} for activity {activity_id}")
        return RouteMatchResult(route_id=route.route_id, is_new_route=True, match_confidence=1.0)

    async def assign_route_to_activity(self, activity_id: int) -> bool:
        """
        Assign a stored activity to a route, at most once.

        Args:
            activity_id: Strava activity ID

        Returns:
            True if the activity has a route (newly assigned or already mapped),
            False if the activity is missing or has no usable GPS data
        """
        activity = await self.activity_repo.get_activity(activity_id)
        if not activity:
            logger.debug(f"Activity {activity_id} not found, cannot assign route")
            return False

        async with self.locks.for_athlete(activity.athlete_id):
            if await self.route_repo.get_mapping(activity_id):
                return True

            streams = None
            if activity.streams_data:
                try:
                    streams = json.loads(activity.streams_data)
                except json.JSONDecodeError as e:
                    logger.warning(f"Error parsing streams data for activity {activity_id}: {e}")

            try:
                result = await self._find_or_create_route(
                    activity.athlete_id,
                    activity_id,
                    activity.best_polyline,
                    streams
                )
            except DuplicateKeyError:
                logger.info(f"Activity {activity_id} was assigned a route by another worker")
                return True

        return result is not None

    async def get_route(self, route_id: str) -> Route | None:
        return await self.route_repo.get_route(route_id)

    async def list_routes(self, athlete_id: int) -> list[Route]:
        """Get an athlete's routes, most frequently run first."""
        return await self.route_repo.get_routes_for_athlete(athlete_id)

    async def get_route_history(
        self,
        route_id: str,
        limit: int | None = None
    ) -> list[RouteHistoryEntry]:
        """
        Get the activities run on a route, most recent first.

        Args:
            route_id: Route ID
            limit: Maximum number of activities (defaults to settings)

        Returns:
            List of RouteHistoryEntry sorted by start date descending
        """
        if limit is None:
            limit = settings.route_history_limit

        mappings = await self.route_repo.get_mappings_for_route(route_id)
        if not mappings:
            return []

        activity_ids = [mapping.activity_id for mapping in mappings]
        return await self.activity_repo.get_activities_by_ids(activity_ids, limit=limit)

    async def get_activity_route(self, activity_id: int) -> ActivityRouteResponse | None:
        """
        Get the route an activity was matched to, with that route's history.

        Args:
            activity_id: Strava activity ID

        Returns:
            ActivityRouteResponse, or None if the activity has no route
        """
        mapping = await self.route_repo.get_mapping(activity_id)
        if not mapping:
            return None

        route = await self.route_repo.get_route(mapping.route_id)
        if not route:
            return None

        history = await self.get_route_history(route.route_id)
        return ActivityRouteResponse(route=route, history=history)
