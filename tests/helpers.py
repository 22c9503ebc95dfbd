"""Request helpers and payloads shared by the test modules."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from restaurant_manager.core.config import Settings

COOKIE_NAME = "rm_auth"
TEST_SECRET = "test-secret-key-with-more-than-32-characters"

VALID_USER = {
    "firstName": "John",
    "lastName": "Doe",
    "email": "john@example.com",
    "password": "SecurePass123!",
    "restaurantName": "My Restaurant",
    "role": "owner",
}


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "SECRET_KEY": TEST_SECRET,
        "BCRYPT_ROUNDS": 4,
        "STATE_BACKEND": "memory",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@asynccontextmanager
async def client_for(application: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def session_cookie(token: str) -> dict[str, str]:
    """Explicit Cookie header so tests never depend on the client's jar."""
    return {"Cookie": f"{COOKIE_NAME}={token}"}


async def register(client: AsyncClient, **overrides):
    return await client.post("/api/register", json={**VALID_USER, **overrides})


async def login(client: AsyncClient, email: str = VALID_USER["email"],
                password: str = VALID_USER["password"]) -> str:
    """Log in, return the session token and empty the client's cookie jar."""
    resp = await client.post("/api/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    token = resp.cookies[COOKIE_NAME]
    client.cookies.clear()
    return token
