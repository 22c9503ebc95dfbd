"""Pydantic schemas for registration, login and the user profile.

Fields are checked in declaration order and the exception handler reports
the first failure only, so a payload with several problems always yields
the same message.
"""

from __future__ import annotations

import re
import string
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from restaurant_manager.core.security import BCRYPT_MAX_BYTES
from restaurant_manager.models.user import ROLES, User

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NAME_RE = re.compile(r"^(?:[^\W\d_]|[ '\-])+$")
_PHONE_RE = re.compile(r"^[0-9+()\-.\s]{7,20}$")
_PASSWORD_SYMBOLS = frozenset(string.punctuation)

EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_LENGTH = 8


# ── Shared rules ────────────────────────────────────────────────────
def normalise_email(v: str) -> str:
    v = v.strip().lower()
    if not v or len(v) > EMAIL_MAX_LENGTH or not _EMAIL_RE.match(v):
        raise ValueError("Please provide a valid email address")
    return v


def check_password_strength(v: str) -> str:
    if len(v) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(v.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must not exceed {BCRYPT_MAX_BYTES} bytes")
    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one number")
    if not any(c in _PASSWORD_SYMBOLS for c in v):
        raise ValueError("Password must contain at least one special character")
    return v


def _check_name(v: str, label: str) -> str:
    v = v.strip()
    if not 2 <= len(v) <= 50:
        raise ValueError(f"{label} must be 2-50 characters")
    if not _NAME_RE.match(v):
        raise ValueError(f"{label} may only contain letters, spaces, hyphens and apostrophes")
    return v


# ── Requests ────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    password: str
    restaurant_name: str = Field(alias="restaurantName")
    role: str
    phone: str | None = None

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v: str) -> str:
        return _check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v: str) -> str:
        return _check_name(v, "Last name")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("restaurant_name")
    @classmethod
    def _restaurant_name(cls, v: str) -> str:
        v = v.strip()
        if not 2 <= len(v) <= 255:
            raise ValueError("Restaurant name must be 2-255 characters")
        return v

    @field_validator("role")
    @classmethod
    def _role(cls, v: str) -> str:
        if v not in ROLES:
            raise ValueError(f"Invalid role; must be one of: {', '.join(ROLES)}")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if not _PHONE_RE.match(v):
            raise ValueError("Phone number must be 7-20 characters of digits, spaces or + - ( ) .")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(alias="currentPassword", min_length=1)
    new_password: str = Field(alias="newPassword")

    @field_validator("new_password")
    @classmethod
    def _new_password(cls, v: str) -> str:
        return check_password_strength(v)


# ── Responses ───────────────────────────────────────────────────────
class UserRead(BaseModel):
    """Public profile. Never carries password material."""

    id: str
    email: str
    firstName: str
    lastName: str
    phone: str | None
    restaurantName: str
    role: str
    createdAt: datetime | None
    lastLogin: datetime | None

    @classmethod
    def from_user(cls, user: User) -> "UserRead":
        return cls(
            id=user.id,
            email=user.email,
            firstName=user.first_name,
            lastName=user.last_name,
            phone=user.phone,
            restaurantName=user.restaurant_name,
            role=user.role,
            createdAt=user.created_at,
            lastLogin=user.last_login,
        )


class MeResponse(BaseModel):
    user: UserRead


class RegisterResponse(BaseModel):
    id: str
    email: str
    message: str = "User created successfully"


class AckResponse(BaseModel):
    ok: bool = True
    message: str


class HealthResponse(BaseModel):
    db: bool
    redis: bool
