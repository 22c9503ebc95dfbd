"""SessionService against a real (in-memory) credential store."""

import pytest

from helpers import VALID_USER
from restaurant_manager.core.exceptions import (AccountDisabledError,
                                                DuplicateUserError,
                                                InvalidCredentialsError,
                                                NotAuthenticatedError,
                                                SessionRevokedError,
                                                ValidationError)
from restaurant_manager.core.revocation import MemoryRevocationRegistry
from restaurant_manager.schemas.user import RegisterRequest
from restaurant_manager.services.session import SessionService
from restaurant_manager.services.users import UserRepository


@pytest.fixture
def service(app, db_session) -> SessionService:
    return SessionService(
        users=UserRepository(db_session),
        hasher=app.state.hasher,
        tokens=app.state.tokens,
        revocations=MemoryRevocationRegistry(),
    )


def _payload(**overrides) -> RegisterRequest:
    return RegisterRequest.model_validate({**VALID_USER, **overrides})


@pytest.mark.asyncio
async def test_register_once_per_email(service: SessionService):
    user = await service.register(_payload())
    assert user.email == "john@example.com"
    assert user.role == "owner"
    assert user.created_at is not None

    with pytest.raises(DuplicateUserError):
        await service.register(_payload(email="John@EXAMPLE.com"))


@pytest.mark.asyncio
async def test_unique_index_backs_the_duplicate_check(db_session):
    """Two inserts that both passed the pre-check: the second loses."""
    repo = UserRepository(db_session)
    fields = dict(
        hashed_password="x", first_name="John", last_name="Doe",
        restaurant_name="My Restaurant", role="owner",
    )
    await repo.create(email="race@example.com", **fields)
    with pytest.raises(DuplicateUserError):
        await repo.create(email="RACE@example.com", **fields)

    assert await repo.get_by_email("race@example.com") is not None


@pytest.mark.asyncio
async def test_login_returns_token_bound_to_user(service: SessionService):
    registered = await service.register(_payload())
    user, token, claims = await service.login("john@example.com", "SecurePass123!")
    assert user.id == registered.id
    assert claims.user_id == registered.id
    assert user.last_login is not None

    fetched, _ = await service.authenticate(token)
    assert fetched.id == registered.id


@pytest.mark.asyncio
async def test_login_failures_share_one_error(service: SessionService):
    await service.register(_payload())
    with pytest.raises(InvalidCredentialsError) as unknown:
        await service.login("ghost@example.com", "SecurePass123!")
    with pytest.raises(InvalidCredentialsError) as wrong:
        await service.login("john@example.com", "WrongPass123!")
    assert str(unknown.value) == str(wrong.value)


@pytest.mark.asyncio
async def test_authenticate_without_token(service: SessionService):
    with pytest.raises(NotAuthenticatedError):
        await service.authenticate(None)


@pytest.mark.asyncio
async def test_logout_revokes(service: SessionService):
    await service.register(_payload())
    _, token, _ = await service.login("john@example.com", "SecurePass123!")

    assert await service.logout(token) is True
    with pytest.raises(SessionRevokedError):
        await service.authenticate(token)


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, "", "garbage"])
async def test_logout_never_fails(service: SessionService, token):
    assert await service.logout(token) is False


@pytest.mark.asyncio
async def test_change_password_rejects_same_password(service: SessionService):
    await service.register(_payload())
    user, _, claims = await service.login("john@example.com", "SecurePass123!")
    with pytest.raises(ValidationError):
        await service.change_password(user, claims, "SecurePass123!", "SecurePass123!")


@pytest.mark.asyncio
async def test_deactivate_revokes_and_refuses(service: SessionService):
    await service.register(_payload())
    user, token, claims = await service.login("john@example.com", "SecurePass123!")

    await service.deactivate(user, claims)
    assert user.is_active is False
    with pytest.raises(SessionRevokedError):
        await service.authenticate(token)
    with pytest.raises(AccountDisabledError):
        await service.login("john@example.com", "SecurePass123!")
