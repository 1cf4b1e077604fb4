"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.router import api_router
from app.config import settings
from app.core.exceptions import AppException
from app.core.redis_client import check_redis_connection, close_redis_connection
from app.database import check_database_connection, engine
from app.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.middleware.logging import LoggingMiddleware, configure_logging
from app.schemas.common import ApiResponse

configure_logging()
logger = structlog.get_logger()


async def _probe_backing_services() -> None:
    """Log what the API can reach at startup; nothing here aborts startup."""
    if await check_database_connection():
        logger.info("database_connected")
    else:
        logger.error("database_connection_failed")

    redis_needed = settings.doctor_cache_enabled or settings.events_redis_enabled
    if not redis_needed:
        return
    if await check_redis_connection():
        logger.info("redis_connected")
    else:
        logger.warning(
            "redis_unavailable",
            doctor_cache_enabled=settings.doctor_cache_enabled,
            events_redis_enabled=settings.events_redis_enabled,
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Probe dependencies on startup and release pools on shutdown."""
    logger.info(
        "application_startup",
        environment=settings.environment,
        version=settings.app_version,
        slot_duration_minutes=settings.slot_duration_minutes,
        cancellation_window_hours=settings.patient_cancellation_window_hours,
        default_doctor_timezone=settings.default_doctor_timezone,
    )
    await _probe_backing_services()

    yield

    logger.info("application_shutdown")
    await engine.dispose()
    close_redis_connection()
    logger.info("connections_closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Appointment scheduling for patients, doctors and administrators",
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)
app.add_middleware(LoggingMiddleware)

app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(Exception, general_exception_handler)  # type: ignore[arg-type]

app.include_router(api_router, prefix=settings.api_v1_prefix)

# Request metrics grouped by route template; scraped from /metrics
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/docs", "/redoc", "/openapi.json", "/metrics"],
    inprogress_name="appointments_api_requests_inprogress",
    inprogress_labels=True,
).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.get("/", tags=["Root"], response_model=ApiResponse[dict[str, str]])
async def root() -> ApiResponse[dict[str, str]]:
    """Service banner."""
    return ApiResponse(
        data={
            "name": settings.app_name,
            "version": settings.app_version,
            "api": settings.api_v1_prefix,
        },
        message=f"Welcome to {settings.app_name}",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
