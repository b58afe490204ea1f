"""
Authentication Routes

Endpoints:
- POST /auth/google - Exchange Google id_token for session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile
- PATCH /auth/me - Update current user profile

Auth Flow:
1. Frontend performs the Google OAuth flow and receives an id_token
2. Frontend POSTs id_token to /auth/google
3. Backend verifies id_token with Google's public keys
4. Backend registers the user on first login (user row, counter row, root folder)
5. Backend returns JWT (in cookie and response body) whose subject is the Google `sub`

The Google `sub` is never stored; the database only sees its salted hash.
"""

import logging

from fastapi import APIRouter, HTTPException, Response, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from dimiplan.api.deps import AppServices, CurrentUserId, DbSession, create_access_token, found_or_404
from dimiplan.config import get_settings
from dimiplan.schemas.auth import GoogleAuthRequest, TokenResponse
from dimiplan.schemas.users import UserRead, UserUpdate

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()
logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@router.post("/google", response_model=TokenResponse)
async def google_login(
    request: GoogleAuthRequest,
    response: Response,
    db: DbSession,
    services: AppServices,
) -> TokenResponse:
    """
    Exchange Google id_token for a session JWT.

    The id_token is verified cryptographically - we trust Google's signature.
    """
    try:
        # Checks signature, expiry, and audience
        idinfo = google_id_token.verify_oauth2_token(
            request.id_token,
            google_requests.Request(),
            settings.google_client_id,
        )
        if idinfo.get("iss") not in GOOGLE_ISSUERS:
            raise ValueError("Invalid issuer")
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Google id_token: {e}",
        )

    external_id = idinfo["sub"]
    email = idinfo.get("email")
    # Only trust verified emails
    if email and not idinfo.get("email_verified", False):
        email = None

    await services.users.create_user(
        db,
        external_id,
        {"name": idinfo.get("name"), "email": email, "profile_image": idinfo.get("picture")},
    )
    registered = await services.users.is_registered(db, external_id)

    access_token = create_access_token(external_id)
    expires_in = settings.jwt_expire_minutes * 60

    # For cross-domain deployments, use samesite="none" + secure=True
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=settings.cookie_cross_domain or settings.environment != "development",
        samesite="none" if settings.cookie_cross_domain else "lax",
        max_age=expires_in,
    )

    return TokenResponse(access_token=access_token, expires_in=expires_in, registered=registered)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication session.

    Only the cookie is cleared; a JWT stored elsewhere stays valid until expiry.
    """
    response.delete_cookie(
        key="access_token",
        httponly=True,
        secure=settings.cookie_cross_domain or settings.environment != "development",
        samesite="none" if settings.cookie_cross_domain else "lax",
    )


@router.get("/me", response_model=UserRead)
async def get_me(external_id: CurrentUserId, db: DbSession, services: AppServices) -> UserRead:
    user = found_or_404(await services.users.get_user(db, external_id), "User not found")
    return UserRead.model_validate(user)


@router.patch("/me", response_model=UserRead)
async def update_me(
    data: UserUpdate,
    external_id: CurrentUserId,
    db: DbSession,
    services: AppServices,
) -> UserRead:
    user = await services.users.update_user(db, external_id, data.model_dump(exclude_unset=True))
    return UserRead.model_validate(user)
