import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_task_processor, get_task_repository
from database.task_repository import TaskRepository
from models.task import TaskCreateRequest, TaskResponse, TaskStatus
from services.task_processor import TaskProcessor, create_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_new_task(
    request: TaskCreateRequest,
    task_repo: Annotated[TaskRepository, Depends(get_task_repository)],
    task_processor: Annotated[TaskProcessor, Depends(get_task_processor)]
):
    """
    Create a new asynchronous task.

    This endpoint creates a task and starts processing it in the background.
    The client receives a task_id that can be used to query the task status.
    """
    task = await create_task(
        task_repo=task_repo,
        athlete_id=request.athlete_id,
        task_type=request.task_type,
        parameters=request.parameters
    )

    task_processor.start_task_in_background(task.task_id)
    logger.info(f"Started {request.task_type.value} task {task.task_id} for athlete {request.athlete_id}")

    return task.to_response()


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task_status(
    task_id: str,
    task_repo: Annotated[TaskRepository, Depends(get_task_repository)]
):
    """
    Get the status and result of a specific task.

    Returns current task status, progress, and result if completed.
    """
    task = await task_repo.get_task(task_id)

    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found"
        )

    return task.to_response()


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    task_repo: Annotated[TaskRepository, Depends(get_task_repository)],
    athlete_id: int = Query(..., description="Athlete to list tasks for"),
    limit: int = Query(50, ge=1, le=500),
    status_filter: TaskStatus | None = None
):
    """List tasks for an athlete, optionally filtered by status."""
    tasks = await task_repo.get_tasks_by_athlete(
        athlete_id=athlete_id,
        limit=limit,
        status=status_filter
    )

    return [task.to_response() for task in tasks]


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    task_repo: Annotated[TaskRepository, Depends(get_task_repository)]
):
    """Delete a task."""
    success = await task_repo.delete_task(task_id)

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found"
        )
