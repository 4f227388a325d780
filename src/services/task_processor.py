import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
import uuid

from database.task_repository import TaskRepository
from models.task import Task, TaskStatus, TaskType
from services.route_clustering import RouteClusteringService

logger = logging.getLogger(__name__)

# Progress is written every this many activities
PROGRESS_INTERVAL = 10

# Keeps references to running background tasks so they are not garbage collected
_background_tasks: set[asyncio.Task] = set()


class TaskProcessor:
    """Background task processor for long-running operations."""

    def __init__(self, task_repo: TaskRepository, route_service: RouteClusteringService):
        self.task_repo = task_repo
        self.route_service = route_service

    async def execute_route_backfill(
        self,
        task_id: str,
        athlete_id: int,
        parameters: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Assign routes to all stored activities of an athlete.

        Activities are processed oldest first so that the earliest run of a
        route becomes the route's representative. Activities that already have
        a route are left untouched.

        Supported parameters:
            limit: Maximum number of activities to process
        """
        logger.info(f"Starting route backfill for task {task_id}, athlete {athlete_id}")

        activity_ids = await self.route_service.activity_repo.get_activity_ids_for_athlete(athlete_id)
        limit = parameters.get("limit")
        if limit:
            activity_ids = activity_ids[:int(limit)]

        assigned = 0
        skipped = 0
        for index, activity_id in enumerate(activity_ids, start=1):
            if await self.route_service.assign_route_to_activity(activity_id):
                assigned += 1
            else:
                skipped += 1

            if index % PROGRESS_INTERVAL == 0:
                await self.task_repo.update_task_progress(task_id, index / len(activity_ids))

        routes = await self.route_service.list_routes(athlete_id)

        logger.info(f"Completed route backfill for task {task_id}: {assigned} assigned, {skipped} skipped")
        return {
            "task_type": TaskType.ROUTE_BACKFILL.value,
            "completed_at": datetime.now(timezone.utc).isoformat(),
            "activities_processed": len(activity_ids),
            "routes_assigned": assigned,
            "activities_skipped": skipped,
            "route_count": len(routes),
            "parameters_used": parameters
        }

    async def process_task(self, task_id: str) -> None:
        """Process a task in the background."""
        try:
            task = await self.task_repo.get_task(task_id)
            if not task:
                logger.error(f"Task {task_id} not found")
                return

            await self.task_repo.update_task_status(task_id, TaskStatus.RUNNING)

            if task.task_type == TaskType.ROUTE_BACKFILL:
                result = await self.execute_route_backfill(task_id, task.athlete_id, task.parameters)
            else:
                raise ValueError(f"Unknown task type: {task.task_type}")

            await self.task_repo.update_task_result(task_id, result)
            await self.task_repo.update_task_progress(task_id, 1.0)
            await self.task_repo.update_task_status(task_id, TaskStatus.COMPLETED)

            logger.info(f"Task {task_id} completed successfully")

        except Exception as e:
            logger.error(f"Task {task_id} failed: {str(e)}", exc_info=True)
            await self.task_repo.update_task_status(
                task_id,
                TaskStatus.FAILED,
                error=str(e)
            )

    def start_task_in_background(self, task_id: str) -> asyncio.Task:
        """Start task processing in the background."""
        background = asyncio.create_task(self.process_task(task_id))
        _background_tasks.add(background)
        background.add_done_callback(_background_tasks.discard)
        logger.info(f"Task {task_id} started in background")
        return background


async def create_task(
    task_repo: TaskRepository,
    athlete_id: int,
    task_type: TaskType,
    parameters: dict[str, Any]
) -> Task:
    """Create a new task and return it."""
    task = Task(
        task_id=str(uuid.uuid4()),
        athlete_id=athlete_id,
        task_type=task_type,
        parameters=parameters
    )

    await task_repo.create_task(task)
    return task
