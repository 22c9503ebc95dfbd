"""
Shared test fixtures for the Restaurant Manager test suite.

Every test gets its own app built by ``create_app``: a private in-memory
SQLite database (aiosqlite + StaticPool), revocation registry and
rate-limit counters.
"""

import os
import sys
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-with-more-than-32-characters"

from fastapi import FastAPI
from httpx import AsyncClient

from helpers import client_for, make_settings
from restaurant_manager.db.base import Base
from restaurant_manager.main import create_app


@pytest.fixture
async def app_factory():
    """Build isolated apps with tables created; disposes their engines afterwards."""
    created: list[FastAPI] = []

    async def _build(**overrides) -> FastAPI:
        application = create_app(make_settings(**overrides))
        async with application.state.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        created.append(application)
        return application

    yield _build

    for application in created:
        await application.state.engine.dispose()


@pytest.fixture
async def app(app_factory) -> FastAPI:
    return await app_factory()


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    async with client_for(app) as client:
        yield client


@pytest.fixture
async def db_session(app: FastAPI):
    """Return a raw database session for direct queries in tests."""
    async with app.state.session_factory() as session:
        yield session
