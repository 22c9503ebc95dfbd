"""
Auth endpoints — register, login, me, logout, password change, account closure.

The session token travels only in the ``rm_auth`` HttpOnly cookie; it is
never part of a JSON body.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from restaurant_manager.api.deps import (client_address,
                                         get_current_session,
                                         get_rate_limiter,
                                         get_session_service,
                                         get_session_token, get_settings,
                                         register_rate_limit)
from restaurant_manager.core.config import Settings
from restaurant_manager.core.exceptions import (InvalidCredentialsError,
                                                RateLimitExceededError)
from restaurant_manager.core.rate_limit import LOGIN, RateLimiter
from restaurant_manager.core.security import SessionClaims
from restaurant_manager.models.user import User
from restaurant_manager.schemas.user import (AckResponse, LoginRequest,
                                             MeResponse,
                                             PasswordChangeRequest,
                                             RegisterRequest,
                                             RegisterResponse, UserRead)
from restaurant_manager.services.session import SessionService

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_max_age,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def _clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    _client: str = Depends(register_rate_limit),
    service: SessionService = Depends(get_session_service),
) -> RegisterResponse:
    """Create an account. Returns only the id and email."""
    user = await service.register(body)
    return RegisterResponse(id=user.id, email=user.email)


@router.post("/login", response_model=AckResponse)
async def login(
    body: LoginRequest,
    response: Response,
    client: str = Depends(client_address),
    limiter: RateLimiter = Depends(get_rate_limiter),
    service: SessionService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
) -> AckResponse:
    """Authenticate with email/password and set the session cookie.

    Only failed attempts count toward the limit. Check, verify and record
    run under one per-client lock.
    """
    async with limiter.serialize(LOGIN, client):
        if not await limiter.check(LOGIN, client):
            raise RateLimitExceededError(retry_after=await limiter.retry_after(LOGIN, client))
        try:
            _user, token, _claims = await service.login(body.email, body.password)
        except InvalidCredentialsError:
            await limiter.record(LOGIN, client)
            logger.warning("Failed login from %s", client)
            raise

    _set_session_cookie(response, token, settings)
    return AckResponse(message="Login successful")


@router.get("/me", response_model=MeResponse)
async def read_current_user(
    current: tuple[User, SessionClaims] = Depends(get_current_session),
) -> MeResponse:
    """Return the profile of the user behind the session cookie."""
    return MeResponse(user=UserRead.from_user(current[0]))


@router.post("/logout", response_model=AckResponse)
async def logout(
    response: Response,
    token: str | None = Depends(get_session_token),
    service: SessionService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
) -> AckResponse:
    """Revoke the current token (if any) and clear the cookie. Always succeeds."""
    await service.logout(token)
    _clear_session_cookie(response, settings)
    return AckResponse(message="Logged out")


@router.put("/me/password", response_model=AckResponse)
async def change_password(
    body: PasswordChangeRequest,
    response: Response,
    current: tuple[User, SessionClaims] = Depends(get_current_session),
    service: SessionService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
) -> AckResponse:
    """Change the password and end the current session."""
    user, claims = current
    await service.change_password(user, claims, body.current_password, body.new_password)
    _clear_session_cookie(response, settings)
    return AckResponse(message="Password changed, please log in again")


@router.delete("/me", response_model=AckResponse)
async def close_account(
    response: Response,
    current: tuple[User, SessionClaims] = Depends(get_current_session),
    service: SessionService = Depends(get_session_service),
    settings: Settings = Depends(get_settings),
) -> AckResponse:
    """Deactivate the account (soft delete) and end the current session."""
    user, claims = current
    await service.deactivate(user, claims)
    _clear_session_cookie(response, settings)
    return AckResponse(message="Account closed")
