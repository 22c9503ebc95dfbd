"""Public health check."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_manager.api.deps import get_db
from restaurant_manager.schemas.user import HealthResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health(request: Request, db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """DB connectivity, plus Redis when it backs the shared auth state."""
    result = HealthResponse(db=False, redis=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    state = request.app.state
    if state.settings.STATE_BACKEND == "redis":
        try:
            result.redis = await state.revocations.ping()
        except Exception as e:
            logger.error("Health check Redis failure: %s", e)

    return result
