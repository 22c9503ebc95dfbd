"""
User model — credentials and restaurant profile.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String

from restaurant_manager.db.base import Base

ROLES = ("owner", "manager", "staff")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    # Stored lower-cased; the unique index is what makes registration first-writer-wins
    email: str = Column(String(254), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    first_name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    last_name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    phone: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    restaurant_name: str = Column(String(255), nullable=False)  # type: ignore[assignment]
    role: str = Column(String(20), nullable=False, default="staff", server_default="staff")  # type: ignore[assignment]
    # owner | manager | staff
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    last_login: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)  # type: ignore[assignment]
