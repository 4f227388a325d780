from datetime import datetime, timezone

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

from models.route import RouteHistoryEntry
from models.strava_activity import StravaActivityRecord

HISTORY_FIELDS = {
    "_id": 0,
    "activity_id": 1,
    "name": 1,
    "start_date": 1,
    "distance": 1,
    "moving_time": 1,
    "average_speed": 1,
    "average_heartrate": 1,
    "total_elevation_gain": 1,
}


class ActivityRepository:
    """Repository for stored Strava activities."""

    def __init__(self, db: AsyncDatabase):
        self.db = db
        self.activities_collection = db["strava_activities"]

    async def ensure_indexes(self) -> None:
        await self.activities_collection.create_index("activity_id", unique=True)
        await self.activities_collection.create_index(
            [("athlete_id", ASCENDING), ("start_date", ASCENDING)]
        )

    async def store_activity(self, activity: StravaActivityRecord) -> bool:
        """
        Store or update an activity in the database.

        Args:
            activity: StravaActivityRecord to store

        Returns:
            True if stored successfully
        """
        activity_dict = activity.model_dump(exclude={"created_at"})

        # Use upsert to handle both insert and update
        result = await self.activities_collection.update_one(
            {"activity_id": activity.activity_id},
            {
                "$set": {
                    **activity_dict,
                    "updated_at": datetime.now(timezone.utc)
                },
                "$setOnInsert": {"created_at": activity.created_at}
            },
            upsert=True
        )

        return result.acknowledged

    async def get_activity(self, activity_id: int) -> StravaActivityRecord | None:
        """
        Get an activity by ID.

        Args:
            activity_id: Strava activity ID

        Returns:
            StravaActivityRecord or None if not found
        """
        doc = await self.activities_collection.find_one({"activity_id": activity_id})

        if doc:
            # Remove MongoDB _id field before creating model
            doc.pop("_id", None)
            return StravaActivityRecord(**doc)

        return None

    async def get_activities_by_ids(
        self,
        activity_ids: list[int],
        limit: int | None = None
    ) -> list[RouteHistoryEntry]:
        """
        Get display projections for a batch of activities, most recent first.

        Args:
            activity_ids: Strava activity IDs to look up
            limit: Maximum number of entries to return

        Returns:
            List of RouteHistoryEntry sorted by start date descending
        """
        # Mongo treats limit(0) as unlimited
        if not activity_ids or limit == 0:
            return []

        cursor = self.activities_collection.find(
            {"activity_id": {"$in": activity_ids}},
            HISTORY_FIELDS
        ).sort("start_date", DESCENDING)
        if limit is not None:
            cursor = cursor.limit(limit)

        return [RouteHistoryEntry(**doc) async for doc in cursor]

    async def get_activity_ids_for_athlete(self, athlete_id: int) -> list[int]:
        """Get IDs of all stored activities for an athlete, oldest first."""
        cursor = self.activities_collection.find(
            {"athlete_id": athlete_id},
            {"_id": 0, "activity_id": 1}
        ).sort("start_date", ASCENDING)
        return [doc["activity_id"] async for doc in cursor]
