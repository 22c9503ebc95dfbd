"""Registration input rules. Only the first failing rule is reported."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from helpers import VALID_USER, register
from restaurant_manager.models.user import User


async def _user_count(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(User))).scalar_one()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "password, fragment",
    [
        ("Sh0rt!", "at least 8 characters"),
        ("lowercase123!", "uppercase"),
        ("UPPERCASE123!", "lowercase"),
        ("NoDigitsHere!", "number"),
        ("NoSymbols123", "special character"),
    ],
)
async def test_weak_password_rejected_without_write(
    async_client: AsyncClient, db_session, password: str, fragment: str
):
    resp = await register(async_client, password=password)
    assert resp.status_code == 400
    body = resp.json()
    assert fragment in body["detail"]
    assert body["field"] == "password"
    assert body["code"] == "validation_error"
    assert await _user_count(db_session) == 0


@pytest.mark.asyncio
async def test_password_too_long(async_client: AsyncClient):
    resp = await register(async_client, password="Aa1!" * 40)
    assert resp.status_code == 400
    assert "exceed" in resp.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field, value, fragment",
    [
        ("firstName", "A", "First name must be 2-50 characters"),
        ("firstName", "J0hn", "First name may only contain"),
        ("lastName", "D" * 51, "Last name must be 2-50 characters"),
        ("email", "notanemail", "valid email"),
        ("email", "a@b", "valid email"),
        ("email", ("x" * 250) + "@example.com", "valid email"),
        ("restaurantName", "R", "Restaurant name"),
        ("role", "admin", "role"),
        ("phone", "123", "Phone number"),
        ("phone", "call me maybe", "Phone number"),
    ],
)
async def test_field_rules(async_client: AsyncClient, field: str, value: str, fragment: str):
    resp = await register(async_client, **{field: value})
    assert resp.status_code == 400
    assert fragment in resp.json()["detail"]
    assert resp.json()["field"] == field


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["José", "Anne-Marie", "O'Brien", "Mary Jane", "Zoë"])
async def test_names_allow_accents_hyphens_apostrophes(async_client: AsyncClient, name: str):
    resp = await register(async_client, firstName=name)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_missing_field(async_client: AsyncClient):
    payload = {k: v for k, v in VALID_USER.items() if k != "restaurantName"}
    resp = await async_client.post("/api/register", json=payload)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "restaurantName is required"


@pytest.mark.asyncio
async def test_wrong_type(async_client: AsyncClient):
    resp = await register(async_client, firstName=12345)
    assert resp.status_code == 400
    assert resp.json()["field"] == "firstName"


@pytest.mark.asyncio
async def test_first_failure_is_reported_deterministically(async_client: AsyncClient):
    """With several bad fields the earliest one in field order wins, every time."""
    bad = {"firstName": "A", "email": "nope", "password": "weak", "role": "chef"}
    details = set()
    for _ in range(3):
        resp = await register(async_client, **bad)
        assert resp.status_code == 400
        details.add((resp.json()["field"], resp.json()["detail"]))
    assert details == {("firstName", "First name must be 2-50 characters")}


@pytest.mark.asyncio
async def test_password_rules_apply_in_order(async_client: AsyncClient):
    # Short and missing every class: length is reported first
    resp = await register(async_client, password="abc")
    assert "at least 8 characters" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_malformed_json(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/register", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_injection_strings_are_just_invalid_input(async_client: AsyncClient):
    resp = await register(async_client, email="' OR '1'='1@example.com")
    assert resp.status_code in (201, 400)

    resp = await register(async_client, firstName="<script>alert(1)</script>")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_password_over_bcrypt_limit_rejected(async_client: AsyncClient, db_session):
    resp = await register(async_client, password="Aa1!" + "x" * 70 + "ONE")
    assert resp.status_code == 400
    assert "72 bytes" in resp.json()["detail"]
    assert await _user_count(db_session) == 0


@pytest.mark.asyncio
async def test_password_limit_counts_bytes_not_characters(async_client: AsyncClient):
    # 39 characters, 74 bytes
    resp = await register(async_client, password="Aa1!" + "é" * 35)
    assert resp.status_code == 400
    assert "72 bytes" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_longer_password_sharing_first_72_bytes_fails_login(async_client: AsyncClient):
    password = "Aa1!" + "x" * 68
    assert len(password.encode()) == 72
    assert (await register(async_client, password=password)).status_code == 201

    resp = await async_client.post(
        "/api/login", json={"email": VALID_USER["email"], "password": password + "TWO"}
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"
