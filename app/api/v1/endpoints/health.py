"""Health check endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection
from app.schemas.common import ApiResponse, CamelModel

router = APIRouter()


class HealthStatus(CamelModel):
    """Service health."""

    status: str
    version: str
    environment: str


class DetailedHealthStatus(HealthStatus):
    """Service health including backing stores."""

    database: str
    redis: str


@router.get(
    "/health",
    response_model=ApiResponse[HealthStatus],
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> ApiResponse[HealthStatus]:
    """Liveness probe; does not touch the database or Redis."""
    return ApiResponse(
        data=HealthStatus(
            status="healthy",
            version=settings.app_version,
            environment=settings.environment,
        ),
        message="Service is healthy",
    )


@router.get(
    "/health/detailed",
    response_model=ApiResponse[DetailedHealthStatus],
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Database unreachable"}},
)
async def detailed_health_check():
    """
    Readiness probe.

    The database is required for scheduling, so an unreachable database
    returns 503. Redis only backs caching and event fan-out, so a Redis
    outage reports ``degraded`` with 200.
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    if not db_healthy:
        overall = "unhealthy"
    elif not redis_healthy:
        overall = "degraded"
    else:
        overall = "healthy"

    body = ApiResponse(
        status_code=status.HTTP_200_OK if db_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        data=DetailedHealthStatus(
            status=overall,
            version=settings.app_version,
            environment=settings.environment,
            database="healthy" if db_healthy else "unhealthy",
            redis="healthy" if redis_healthy else "unhealthy",
        ),
        message=f"Service is {overall}",
        success=db_healthy,
    )
    if not db_healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(mode="json", by_alias=True),
        )
    return body


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
