import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_activity_repository, get_route_service
from config import settings
from database.activity_repository import ActivityRepository
from models.route import ActivityRouteResponse, Route, RouteAssignmentResponse, RouteHistoryEntry
from models.strava_activity import StravaActivityRecord
from services.route_clustering import RouteClusteringService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/athlete", tags=["routes"])


async def _get_owned_activity(
    athlete_id: int,
    activity_id: int,
    activity_repo: ActivityRepository
) -> StravaActivityRecord:
    activity = await activity_repo.get_activity(activity_id)
    if not activity or activity.athlete_id != athlete_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Activity {activity_id} not found"
        )
    return activity


@router.post("/{athlete_id}/activities", response_model=RouteAssignmentResponse)
async def ingest_activity(
    athlete_id: int,
    activity: StravaActivityRecord,
    activity_repo: Annotated[ActivityRepository, Depends(get_activity_repository)],
    route_service: Annotated[RouteClusteringService, Depends(get_route_service)]
) -> RouteAssignmentResponse:
    """
    Store an activity delivered by the sync pipeline and assign it to a route.

    Activities without usable GPS data are stored but not assigned.
    """
    if activity.athlete_id != athlete_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Activity athlete_id does not match the URL"
        )

    await activity_repo.store_activity(activity)
    assigned = await route_service.assign_route_to_activity(activity.activity_id)

    logger.info(f"Ingested activity {activity.activity_id} for athlete {athlete_id}, route assigned: {assigned}")
    return RouteAssignmentResponse(activity_id=activity.activity_id, assigned=assigned)


@router.post("/{athlete_id}/activities/{activity_id}/route", response_model=RouteAssignmentResponse)
async def assign_activity_route(
    athlete_id: int,
    activity_id: int,
    activity_repo: Annotated[ActivityRepository, Depends(get_activity_repository)],
    route_service: Annotated[RouteClusteringService, Depends(get_route_service)]
) -> RouteAssignmentResponse:
    """Assign a stored activity to a route. Already assigned activities are left as they are."""
    await _get_owned_activity(athlete_id, activity_id, activity_repo)

    assigned = await route_service.assign_route_to_activity(activity_id)
    return RouteAssignmentResponse(activity_id=activity_id, assigned=assigned)


@router.get("/{athlete_id}/activities/{activity_id}/route", response_model=ActivityRouteResponse)
async def get_activity_route(
    athlete_id: int,
    activity_id: int,
    activity_repo: Annotated[ActivityRepository, Depends(get_activity_repository)],
    route_service: Annotated[RouteClusteringService, Depends(get_route_service)]
) -> ActivityRouteResponse:
    """
    Get the route an activity belongs to, with the route's run history.

    Expected URL: /api/v1/athlete/{athlete_id}/activities/{activity_id}/route
    """
    await _get_owned_activity(athlete_id, activity_id, activity_repo)

    activity_route = await route_service.get_activity_route(activity_id)
    if not activity_route:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Activity {activity_id} has no route"
        )
    return activity_route


@router.get("/{athlete_id}/routes", response_model=list[Route])
async def list_athlete_routes(
    athlete_id: int,
    route_service: Annotated[RouteClusteringService, Depends(get_route_service)]
) -> list[Route]:
    """List an athlete's routes, most frequently run first."""
    return await route_service.list_routes(athlete_id)


@router.get("/{athlete_id}/routes/{route_id}/history", response_model=list[RouteHistoryEntry])
async def get_route_history(
    athlete_id: int,
    route_id: str,
    route_service: Annotated[RouteClusteringService, Depends(get_route_service)],
    limit: int = Query(settings.route_history_limit, ge=1, le=200, description="Maximum number of runs to return")
) -> list[RouteHistoryEntry]:
    """Get the runs of a route, most recent first."""
    route = await route_service.get_route(route_id)
    if not route or route.athlete_id != athlete_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Route {route_id} not found"
        )

    return await route_service.get_route_history(route_id, limit=limit)
