"""
FastAPI dependencies — database session, session service, rate-limit gates
and the current-user guard.

Shared state (engine, registries, counters) lives on ``app.state`` and is
built by ``create_app``; nothing here is a module-level singleton.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_manager.core.config import Settings
from restaurant_manager.core.exceptions import RateLimitExceededError
from restaurant_manager.core.rate_limit import REGISTER, RateLimiter
from restaurant_manager.core.security import SessionClaims
from restaurant_manager.models.user import User
from restaurant_manager.services.session import SessionService
from restaurant_manager.services.users import UserRepository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


# ── Database session ────────────────────────────────────────────────
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_session_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionService:
    state = request.app.state
    return SessionService(
        users=UserRepository(db),
        hasher=state.hasher,
        tokens=state.tokens,
        revocations=state.revocations,
    )


# ── Rate-limit gates ────────────────────────────────────────────────
def client_address(request: Request) -> str:
    return get_remote_address(request)


async def register_rate_limit(
    client: str = Depends(client_address),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> str:
    """Every registration attempt counts, valid or not."""
    if not await limiter.record(REGISTER, client):
        raise RateLimitExceededError(retry_after=await limiter.retry_after(REGISTER, client))
    return client


# ── Auth ────────────────────────────────────────────────────────────
def get_session_token(request: Request) -> str | None:
    return request.cookies.get(request.app.state.settings.SESSION_COOKIE_NAME)


async def get_current_session(
    token: str | None = Depends(get_session_token),
    service: SessionService = Depends(get_session_service),
) -> tuple[User, SessionClaims]:
    return await service.authenticate(token)
