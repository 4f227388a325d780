import logging
from datetime import datetime, timezone

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from models.route import ActivityRouteMap, Route

logger = logging.getLogger(__name__)


class RouteRepository:
    """Repository for routes and activity-to-route mappings."""

    def __init__(self, db: AsyncDatabase):
        self.db = db
        self.routes_collection = db["routes"]
        self.mappings_collection = db["activity_route_map"]

    async def ensure_indexes(self) -> None:
        """Create indexes, including the uniqueness guarantees for routes and mappings."""
        await self.routes_collection.create_index("route_id", unique=True)
        await self.routes_collection.create_index(
            [("athlete_id", ASCENDING), ("route_key", ASCENDING)],
            unique=True
        )
        await self.routes_collection.create_index(
            [("athlete_id", ASCENDING), ("run_count", DESCENDING)]
        )
        await self.mappings_collection.create_index("activity_id", unique=True)
        await self.mappings_collection.create_index("route_id")

    async def get_routes_for_athlete(self, athlete_id: int) -> list[Route]:
        """Get all routes owned by an athlete, most frequently run first."""
        cursor = self.routes_collection.find({"athlete_id": athlete_id}).sort("run_count", DESCENDING)
        routes = []
        async for doc in cursor:
            doc.pop("_id", None)
            routes.append(Route(**doc))
        return routes

    async def get_route(self, route_id: str) -> Route | None:
        """Get a route by ID."""
        doc = await self.routes_collection.find_one({"route_id": route_id})
        if doc:
            doc.pop("_id", None)
            return Route(**doc)
        return None

    async def get_route_by_key(self, athlete_id: int, route_key: str) -> Route | None:
        """Get an athlete's route by its signature key."""
        doc = await self.routes_collection.find_one({
            "athlete_id": athlete_id,
            "route_key": route_key
        })
        if doc:
            doc.pop("_id", None)
            return Route(**doc)
        return None

    async def create_route(self, route: Route) -> Route:
        """
        Insert a new route.

        Raises:
            DuplicateKeyError: If the athlete already has a route with the same key
        """
        await self.routes_collection.insert_one(route.model_dump())
        logger.info(f"Created route {route.route_id} for athlete {route.athlete_id}")
        return route

    async def delete_route(self, route_id: str) -> bool:
        """Delete a route. Returns True if a route was removed."""
        result = await self.routes_collection.delete_one({"route_id": route_id})
        return result.deleted_count > 0

    async def record_route_run(self, route_id: str, run_at: datetime | None = None) -> Route | None:
        """Increment a route's run count and update when it was last run."""
        doc = await self.routes_collection.find_one_and_update(
            {"route_id": route_id},
            {
                "$inc": {"run_count": 1},
                "$set": {"last_run_at": run_at or datetime.now(timezone.utc)}
            },
            return_document=ReturnDocument.AFTER
        )
        if doc:
            doc.pop("_id", None)
            return Route(**doc)
        return None

    async def create_mapping(self, mapping: ActivityRouteMap) -> ActivityRouteMap:
        """
        Link an activity to a route.

        Raises:
            DuplicateKeyError: If the activity is already mapped
        """
        await self.mappings_collection.insert_one(mapping.model_dump())
        return mapping

    async def get_mapping(self, activity_id: int) -> ActivityRouteMap | None:
        """Get the route mapping for an activity."""
        doc = await self.mappings_collection.find_one({"activity_id": activity_id})
        if doc:
            doc.pop("_id", None)
            return ActivityRouteMap(**doc)
        return None

    async def get_mappings_for_route(self, route_id: str) -> list[ActivityRouteMap]:
        """Get all activity mappings for a route, newest first."""
        cursor = self.mappings_collection.find({"route_id": route_id}).sort("created_at", DESCENDING)
        mappings = []
        async for doc in cursor:
            doc.pop("_id", None)
            mappings.append(ActivityRouteMap(**doc))
        return mappings
