from fastapi import APIRouter
from api.route_routes import router as route_router
from api.task_routes import router as task_router

router = APIRouter()

# Include route clustering routes
router.include_router(route_router, prefix="/api/v1")

# Include task routes
router.include_router(task_router, prefix="/api/v1")


@router.get("/api/v1/status")
async def api_status():
    """API status endpoint."""
    return {"status": "operational", "version": "v1"}
