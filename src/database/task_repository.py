import logging
from datetime import datetime, timezone
from typing import Any

from pymongo import DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

from models.task import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for background task tracking."""

    def __init__(self, db: AsyncDatabase):
        self.db = db
        self.collection = db["tasks"]

    async def create_task(self, task: Task) -> Task:
        """Create a new task in the database."""
        await self.collection.insert_one(task.model_dump())
        logger.info(f"Created task {task.task_id} for athlete {task.athlete_id}")
        return task

    async def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        doc = await self.collection.find_one({"task_id": task_id})
        if doc:
            doc.pop("_id", None)
            return Task(**doc)
        return None

    async def get_tasks_by_athlete(
        self,
        athlete_id: int,
        limit: int = 50,
        status: TaskStatus | None = None
    ) -> list[Task]:
        """Get the most recent tasks for an athlete."""
        query: dict[str, Any] = {"athlete_id": athlete_id}
        if status:
            query["status"] = status.value

        cursor = self.collection.find(query).sort("created_at", DESCENDING).limit(limit)
        tasks = []
        async for doc in cursor:
            doc.pop("_id", None)
            tasks.append(Task(**doc))
        return tasks

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        error: str | None = None
    ) -> bool:
        """Update task status, stamping start and completion times."""
        now = datetime.now(timezone.utc)
        update_data: dict[str, Any] = {"status": status.value}

        if status == TaskStatus.RUNNING:
            update_data["started_at"] = now
        elif status in (TaskStatus.COMPLETED, TaskStatus.FAILED):
            update_data["completed_at"] = now

        if error:
            update_data["error"] = error

        result = await self.collection.update_one(
            {"task_id": task_id},
            {"$set": update_data}
        )
        return result.modified_count > 0

    async def update_task_progress(self, task_id: str, progress: float) -> bool:
        result = await self.collection.update_one(
            {"task_id": task_id},
            {"$set": {"progress": progress}}
        )
        return result.modified_count > 0

    async def update_task_result(self, task_id: str, result: dict[str, Any]) -> bool:
        update_result = await self.collection.update_one(
            {"task_id": task_id},
            {"$set": {"result": result}}
        )
        return update_result.modified_count > 0

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task."""
        result = await self.collection.delete_one({"task_id": task_id})
        return result.deleted_count > 0
