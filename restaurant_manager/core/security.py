"""
Session token creation / verification (JWT) and password hashing (bcrypt).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from restaurant_manager.core.exceptions import NotAuthenticatedError, SessionExpiredError

_TOKEN_TYPE = "session"

# bcrypt ignores everything past this many bytes
BCRYPT_MAX_BYTES = 72


# ── Passwords ───────────────────────────────────────────────────────
class PasswordHasher:
    """Salted bcrypt hashing. The async variants run in the thread pool."""

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def get_password_hash(self, plain: str) -> str:
        if len(plain.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password exceeds {BCRYPT_MAX_BYTES} bytes")
        return self._context.hash(plain)

    def verify_password(self, plain: str, hashed: str) -> bool:
        if len(plain.encode("utf-8")) > BCRYPT_MAX_BYTES:
            # Would otherwise match any hash of its first 72 bytes
            return False
        try:
            return self._context.verify(plain, hashed)
        except (ValueError, TypeError):
            # Malformed or unknown hash format
            return False

    async def hash(self, plain: str) -> str:
        return await run_in_threadpool(self.get_password_hash, plain)

    async def verify(self, plain: str, hashed: str) -> bool:
        return await run_in_threadpool(self.verify_password, plain, hashed)

    async def dummy_verify(self) -> None:
        """Burn one verification's worth of CPU for unknown accounts."""
        await run_in_threadpool(self._context.dummy_verify)


# ── Session tokens ──────────────────────────────────────────────────
@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    token_id: str
    issued_at: datetime
    expires_at: datetime

    def remaining_seconds(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return max(0, math.ceil((self.expires_at - now).total_seconds()))


class TokenIssuer:
    """Mints and verifies signed, time-limited session tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime_minutes: int = 120) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime = timedelta(minutes=lifetime_minutes)

    def create_session_token(
        self, subject: str, email: str, now: datetime | None = None
    ) -> tuple[str, SessionClaims]:
        issued = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        claims = SessionClaims(
            user_id=str(subject),
            token_id=uuid.uuid4().hex,
            issued_at=issued,
            expires_at=issued + self.lifetime,
        )
        token = jwt.encode(
            {
                "sub": claims.user_id,
                "email": email,
                "jti": claims.token_id,
                "iat": int(claims.issued_at.timestamp()),
                "exp": int(claims.expires_at.timestamp()),
                "type": _TOKEN_TYPE,
            },
            self._secret,
            algorithm=self._algorithm,
        )
        return token, claims

    def decode_session_token(self, token: str) -> SessionClaims:
        """Verify signature and expiry.

        Raises ``SessionExpiredError`` for a well-signed token past its
        expiry and ``NotAuthenticatedError`` for anything else that fails.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as exc:
            raise SessionExpiredError() from exc
        except JWTError as exc:
            raise NotAuthenticatedError("Invalid session") from exc

        sub = payload.get("sub")
        jti = payload.get("jti")
        if payload.get("type") != _TOKEN_TYPE or not sub or not jti or "exp" not in payload:
            raise NotAuthenticatedError("Invalid session")

        return SessionClaims(
            user_id=str(sub),
            token_id=str(jti),
            issued_at=datetime.fromtimestamp(int(payload.get("iat", 0)), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
