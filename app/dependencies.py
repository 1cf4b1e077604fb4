"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import user_id_from_token
from app.database import get_db
from app.scheduling.events import EventEmitter
from app.scheduling.permissions import Principal, Role
from app.services.appointment_service import AppointmentService
from app.services.directory_service import DirectoryService
from app.services.notification_service import InAppNotificationWriter, RedisEventPublisher

# Security
security = HTTPBearer(auto_error=False)


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Authenticate the bearer token.

    Args:
        credentials: Bearer token credentials, None when the header is missing

    Returns:
        User ID from the token subject

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if credentials is None:
        raise _credentials_error("Not authenticated")

    user_id = user_id_from_token(credentials.credentials)
    if user_id is None:
        raise _credentials_error()
    return user_id


def get_directory_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DirectoryService:
    """Directory lookups, with the Redis doctor cache when enabled."""
    cache = CacheManager(get_redis_client()) if settings.doctor_cache_enabled else None
    return DirectoryService(db, cache_manager=cache)


async def get_current_principal(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    directory: Annotated[DirectoryService, Depends(get_directory_service)],
) -> Principal:
    """
    Resolve the caller's role and patient/doctor profile.

    Raises:
        HTTPException: If the user is unknown or deactivated
    """
    user = await directory.get_user(user_id)

    if not user:
        raise _credentials_error("User not found")

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    role = Role(user["role"])
    profile = None
    if role == Role.PATIENT:
        profile = await directory.get_patient_by_user_id(user_id)
    elif role == Role.DOCTOR:
        profile = await directory.get_doctor_by_user_id(user_id)

    return Principal(
        user_id=user_id,
        role=role,
        profile_id=profile["id"] if profile else None,
    )


def get_event_emitter(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EventEmitter:
    """Emitter wired to the in-app notification writer and, if enabled, Redis."""
    emitter = EventEmitter([InAppNotificationWriter(db)])
    if settings.events_redis_enabled:
        emitter.subscribe(
            RedisEventPublisher(get_redis_client(), settings.appointment_events_channel)
        )
    return emitter


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    directory: Annotated[DirectoryService, Depends(get_directory_service)],
    emitter: Annotated[EventEmitter, Depends(get_event_emitter)],
) -> AppointmentService:
    """Appointment service bound to the request's session."""
    return AppointmentService(db, directory=directory, emitter=emitter)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
