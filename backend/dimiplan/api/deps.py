"""
FastAPI dependencies for authentication and service access.

Key patterns:
1. The session JWT carries the external OAuth identifier as `sub`
2. Routes hand that identifier to the services; only the services hash it
3. No global "current user" state - always pass the identifier explicitly

Security model:
- JWT stored in HttpOnly cookie (recommended) or Authorization header
- Every query is scoped by the owner hash at the SQL level
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from dimiplan.config import get_settings
from dimiplan.db.session import get_db
from dimiplan.services import Services, get_services

settings = get_settings()


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(external_id: str) -> str:
    """
    Create a session JWT for an external identifier.

    The token carries nothing but the subject and the expiry.
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": external_id,
        "exp": expire,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str | None:
    """Return the external identifier of a valid token, None if invalid/expired."""
    try:
        payload = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    Extract JWT token from request.

    Supports two methods (in order of preference):
    1. HttpOnly cookie named 'access_token'
    2. Authorization header: 'Bearer <token>'
    """
    if access_token:
        return access_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
    services: Annotated[Services, Depends(get_services)],
) -> str:
    """
    Validate the JWT and return the caller's external identifier.

    Raises 401 if the token is missing, invalid or expired, or if the user
    row no longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    external_id = decode_access_token(token)
    if external_id is None:
        raise credentials_exception

    if not await services.users.user_exists(db, external_id):
        raise credentials_exception

    return external_id


# Type aliases for dependency injection
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
AppServices = Annotated[Services, Depends(get_services)]


def found_or_404(record: dict | None, detail: str = "Resource not found") -> dict:
    """Read helpers return None for a missing record; routes answer 404."""
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return record
