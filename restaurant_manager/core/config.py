"""
Centralised application settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

_DEV_SECRET = "dev-secret-change-me-before-deploying-anywhere"
_VALID_ENVIRONMENTS = {"development", "production", "test"}
_VALID_BACKENDS = {"memory", "redis"}


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "Restaurant Manager"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"  # development | production | test

    # ── Persistence ─────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./restaurant_manager.db"
    STATE_BACKEND: str = "memory"  # memory | redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # ── Session tokens ──────────────────────────────────────────────
    SECRET_KEY: str = _DEV_SECRET
    ALGORITHM: str = "HS256"
    SESSION_TOKEN_EXPIRE_MINUTES: int = 120
    SESSION_COOKIE_NAME: str = "rm_auth"
    COOKIE_SECURE: bool | None = None  # None -> secure only in production

    # ── Passwords ───────────────────────────────────────────────────
    BCRYPT_ROUNDS: int = 12

    # ── Rate limiting ───────────────────────────────────────────────
    RATE_LIMIT_ENABLED: bool | None = None  # None -> off in test mode
    REGISTER_RATE_LIMIT: str = "5/15 minutes"
    LOGIN_FAILURE_RATE_LIMIT: str = "10/15 minutes"

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: Annotated[list[str], NoDecode] = [
        "http://localhost",
        "http://localhost:5000",
        "http://localhost:8000",
        "http://127.0.0.1",
        "http://127.0.0.1:5000",
        "http://127.0.0.1:8000",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    @field_validator("ENVIRONMENT")
    @classmethod
    def _validate_environment(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in _VALID_ENVIRONMENTS:
            raise ValueError(f"ENVIRONMENT must be one of: {sorted(_VALID_ENVIRONMENTS)}")
        return v

    @field_validator("STATE_BACKEND")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in _VALID_BACKENDS:
            raise ValueError(f"STATE_BACKEND must be one of: {sorted(_VALID_BACKENDS)}")
        return v

    @model_validator(mode="after")
    def _require_strong_secret_in_production(self) -> "Settings":
        if self.ENVIRONMENT == "production" and (
            self.SECRET_KEY == _DEV_SECRET or len(self.SECRET_KEY) < 32
        ):
            raise ValueError("SECRET_KEY must be set to at least 32 characters in production")
        return self

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── Static frontend (optional) ──────────────────────────────────
    FRONTEND_DIR: str | None = None

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def cookie_secure(self) -> bool:
        if self.COOKIE_SECURE is not None:
            return self.COOKIE_SECURE
        return self.is_production

    @property
    def rate_limit_enabled(self) -> bool:
        if self.RATE_LIMIT_ENABLED is not None:
            return self.RATE_LIMIT_ENABLED
        return self.ENVIRONMENT != "test"

    @property
    def session_max_age(self) -> int:
        return self.SESSION_TOKEN_EXPIRE_MINUTES * 60


settings = Settings()

if settings.SECRET_KEY == _DEV_SECRET:
    logging.getLogger("restaurant_manager.core.config").warning(
        "WARNING: You are running with the default INSECURE secret key! "
        "Set SECRET_KEY in your .env file before deploying."
    )
