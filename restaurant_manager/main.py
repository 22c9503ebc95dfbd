"""
Restaurant Manager — application entry point.

This is the **only** file that assembles the app. Every piece of shared
state is built here and hung on ``app.state`` so that each app instance
(and each test) gets its own credential store engine, revocation registry
and rate-limit counters.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from restaurant_manager.api.api import api_router
from restaurant_manager.core.config import Settings, settings as default_settings
from restaurant_manager.core.exceptions import register_exception_handlers
from restaurant_manager.core.rate_limit import LOGIN, REGISTER, RateLimiter
from restaurant_manager.core.revocation import build_revocation_registry
from restaurant_manager.core.security import PasswordHasher, TokenIssuer
from restaurant_manager.db.base import Base
from restaurant_manager.db.session import build_engine, build_session_factory

# Ensure all models are imported so metadata.create_all can see them
from restaurant_manager.models.user import User  # noqa: F401

logging.basicConfig(
    level=getattr(logging, default_settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    logger.info(
        "%s v%s started (%s mode, rate limiting %s)",
        app.state.settings.PROJECT_NAME,
        app.state.settings.VERSION,
        app.state.settings.ENVIRONMENT,
        "on" if app.state.rate_limiter.enabled else "off",
    )
    yield
    await app.state.revocations.close()
    await app.state.engine.dispose()
    logger.info("Shutdown complete")


def _init_state(application: FastAPI, cfg: Settings) -> None:
    state = application.state
    state.settings = cfg
    state.engine = build_engine(cfg.DATABASE_URL)
    state.session_factory = build_session_factory(state.engine)
    state.hasher = PasswordHasher(rounds=cfg.BCRYPT_ROUNDS)
    state.tokens = TokenIssuer(
        cfg.SECRET_KEY,
        algorithm=cfg.ALGORITHM,
        lifetime_minutes=cfg.SESSION_TOKEN_EXPIRE_MINUTES,
    )
    state.revocations = build_revocation_registry(cfg.STATE_BACKEND, cfg.REDIS_URL)
    state.rate_limiter = RateLimiter(
        {REGISTER: cfg.REGISTER_RATE_LIMIT, LOGIN: cfg.LOGIN_FAILURE_RATE_LIMIT},
        storage_uri=cfg.REDIS_URL if cfg.STATE_BACKEND == "redis" else "memory://",
        enabled=cfg.rate_limit_enabled,
    )


# ── App factory ─────────────────────────────────────────────────────
def create_app(cfg: Settings | None = None) -> FastAPI:
    cfg = cfg or default_settings

    application = FastAPI(
        title=cfg.PROJECT_NAME,
        description="Restaurant management: accounts and sessions",
        version=cfg.VERSION,
        openapi_url=f"{cfg.API_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    _init_state(application, cfg)

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router, prefix=cfg.API_PREFIX)

    # Serve frontend static files (must be last — catch-all mount)
    if cfg.FRONTEND_DIR:
        frontend_dir = Path(cfg.FRONTEND_DIR).resolve()
        if frontend_dir.is_dir():
            application.mount(
                "/",
                StaticFiles(directory=str(frontend_dir), html=True),
                name="frontend",
            )
            logger.info("Frontend mounted from %s", frontend_dir)
        else:
            logger.warning("FRONTEND_DIR %s is not a directory; skipping", frontend_dir)

    return application


app = create_app()
