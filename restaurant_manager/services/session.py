"""
Session service — registration, login, "who am I", logout.

Collaborators are injected so each app instance (and each test) owns its
own credential store session, revocation registry and token issuer.
"""

from __future__ import annotations

import logging

from restaurant_manager.core.exceptions import (AccountDisabledError,
                                                DuplicateUserError,
                                                InvalidCredentialsError,
                                                NotAuthenticatedError,
                                                SessionExpiredError,
                                                SessionRevokedError,
                                                ValidationError)
from restaurant_manager.core.revocation import RevocationRegistry
from restaurant_manager.core.security import (PasswordHasher, SessionClaims,
                                              TokenIssuer)
from restaurant_manager.models.user import User
from restaurant_manager.schemas.user import RegisterRequest
from restaurant_manager.services.users import UserRepository

logger = logging.getLogger(__name__)


class SessionService:
    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        revocations: RevocationRegistry,
    ) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.revocations = revocations

    # ── Registration ────────────────────────────────────────────────
    async def register(self, data: RegisterRequest) -> User:
        if await self.users.get_by_email(data.email) is not None:
            logger.info("Registration rejected: email already in use")
            raise DuplicateUserError()

        user = await self.users.create(
            email=data.email,
            hashed_password=await self.hasher.hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            restaurant_name=data.restaurant_name,
            role=data.role,
            phone=data.phone,
        )
        logger.info("Registered user %s (%s)", user.id, user.role)
        return user

    # ── Login ───────────────────────────────────────────────────────
    async def login(self, email: str, password: str) -> tuple[User, str, SessionClaims]:
        """Return the user plus a freshly minted session token.

        Unknown email and wrong password raise the same
        ``InvalidCredentialsError``.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            await self.hasher.dummy_verify()
            raise InvalidCredentialsError()
        if not await self.hasher.verify(password, user.hashed_password):
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.warning("Login refused for inactive user %s", user.id)
            raise AccountDisabledError()

        token, claims = self.tokens.create_session_token(user.id, user.email)
        await self.users.mark_login(user)
        logger.info("User %s logged in", user.id)
        return user, token, claims

    # ── Session-Fetch ───────────────────────────────────────────────
    async def authenticate(self, token: str | None) -> tuple[User, SessionClaims]:
        """Resolve a session token to its user.

        Checks run in a fixed order: presence, signature/expiry,
        revocation, then account existence.
        """
        if not token:
            raise NotAuthenticatedError()

        claims = self.tokens.decode_session_token(token)

        if await self.revocations.is_revoked(claims.token_id):
            raise SessionRevokedError()

        user = await self.users.get_by_id(claims.user_id)
        if user is None or not user.is_active:
            raise NotAuthenticatedError()
        return user, claims

    # ── Logout ──────────────────────────────────────────────────────
    async def logout(self, token: str | None) -> bool:
        """Revoke the token if it still verifies. Never fails."""
        if not token:
            return False
        try:
            claims = self.tokens.decode_session_token(token)
        except (NotAuthenticatedError, SessionExpiredError):
            return False
        await self.revoke(claims)
        logger.info("User %s logged out", claims.user_id)
        return True

    async def revoke(self, claims: SessionClaims) -> None:
        await self.revocations.revoke(claims.token_id, claims.remaining_seconds())

    # ── Password change ─────────────────────────────────────────────
    async def change_password(
        self, user: User, claims: SessionClaims, current_password: str, new_password: str
    ) -> None:
        if not await self.hasher.verify(current_password, user.hashed_password):
            raise ValidationError("Current password is incorrect", field="currentPassword")
        if current_password == new_password:
            raise ValidationError(
                "New password must differ from the current password", field="newPassword"
            )
        await self.users.set_password_hash(user, await self.hasher.hash(new_password))
        await self.revoke(claims)
        logger.info("User %s changed password; session revoked", user.id)

    # ── Account closure ─────────────────────────────────────────────
    async def deactivate(self, user: User, claims: SessionClaims) -> None:
        """Soft-delete: the row stays, login and session checks refuse it."""
        await self.users.set_active(user, False)
        await self.revoke(claims)
        logger.info("User %s deactivated their account", user.id)
