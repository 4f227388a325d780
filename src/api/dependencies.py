from typing import Annotated

from fastapi import Depends
from pymongo.asynchronous.database import AsyncDatabase

from database.activity_repository import ActivityRepository
from database.mongodb import get_db
from database.route_repository import RouteRepository
from database.task_repository import TaskRepository
from services.route_clustering import RouteClusteringService
from services.task_processor import TaskProcessor


def get_route_repository(db: Annotated[AsyncDatabase, Depends(get_db)]) -> RouteRepository:
    """Dependency to get route repository."""
    return RouteRepository(db)


def get_activity_repository(db: Annotated[AsyncDatabase, Depends(get_db)]) -> ActivityRepository:
    """Dependency to get activity repository."""
    return ActivityRepository(db)


def get_task_repository(db: Annotated[AsyncDatabase, Depends(get_db)]) -> TaskRepository:
    """Dependency to get task repository."""
    return TaskRepository(db)


def get_route_service(
    route_repo: Annotated[RouteRepository, Depends(get_route_repository)],
    activity_repo: Annotated[ActivityRepository, Depends(get_activity_repository)]
) -> RouteClusteringService:
    """Dependency to get route clustering service."""
    return RouteClusteringService(route_repo, activity_repo)


def get_task_processor(
    task_repo: Annotated[TaskRepository, Depends(get_task_repository)],
    route_service: Annotated[RouteClusteringService, Depends(get_route_service)]
) -> TaskProcessor:
    """Dependency to get task processor."""
    return TaskProcessor(task_repo, route_service)
