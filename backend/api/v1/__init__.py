"""
API v1 Router - Main router for all v1 API endpoints
"""

from fastapi import APIRouter, Depends

from api.dependencies import setup_request_context
from api.v1.auth import router as auth_router
from api.v1.clips import router as clips_router
from api.v1.settings import router as settings_router
from api.v1.training import router as training_router
from api.v1.videos import router as videos_router
from core.config import settings
from core.logging import get_logger
from domain.schemas import HealthResponse
from infrastructure.database import check_database_health

logger = get_logger("api_v1")

# Create the main v1 router
v1_router = APIRouter(prefix="/api/v1")

# Include all sub-routers
v1_router.include_router(auth_router)
v1_router.include_router(settings_router)
v1_router.include_router(clips_router)
v1_router.include_router(videos_router)
v1_router.include_router(training_router)


@v1_router.get("/health", response_model=HealthResponse)
async def health_check(_: str = Depends(setup_request_context)) -> HealthResponse:
    """Health check endpoint for v1 API"""
    database_health = check_database_health()

    health_status = HealthResponse(
        status="healthy" if database_health["connection"] else "unhealthy",
        service=settings.app_name,
        version=settings.app_version,
        api_version="v1",
        database=database_health["database"],
    )

    if health_status.status != "healthy":
        logger.warning(f"Health check failed: {database_health.get('error')}")

    return health_status
