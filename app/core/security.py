"""Bearer token verification.

Access tokens are issued by the authentication service and carry the user
ID in ``sub``. This API only verifies them; ``create_access_token`` exists
for service-to-service callers such as scheduled jobs and for tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from jose import JWTError, jwt

from app.config import settings

logger = structlog.get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign an access token.

    Args:
        data: Claims to encode; ``sub`` must be the user ID as a string
        expires_delta: Lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    claims = {**data, "iat": issued_at, "exp": issued_at + lifetime, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the verified claims of an access token, or None if it is not acceptable."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.debug("access_token_rejected", error=str(e))
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        logger.debug("access_token_rejected", error="wrong token type")
        return None

    return payload


def user_id_from_token(token: str) -> UUID | None:
    """User ID carried in a valid access token's ``sub`` claim."""
    payload = decode_access_token(token)
    if payload is None:
        return None

    subject = payload.get("sub")
    if not isinstance(subject, str):
        return None

    try:
        return UUID(subject)
    except ValueError:
        return None
