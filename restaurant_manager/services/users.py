"""
User repository — the credential store. Pure data access.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_manager.core.exceptions import DuplicateUserError
from restaurant_manager.models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create(
        self,
        *,
        email: str,
        hashed_password: str,
        first_name: str,
        last_name: str,
        restaurant_name: str,
        role: str,
        phone: str | None = None,
    ) -> User:
        """Insert a user. A concurrent insert of the same email loses with ``DuplicateUserError``."""
        user = User(
            email=email.strip().lower(),
            hashed_password=hashed_password,
            first_name=first_name,
            last_name=last_name,
            restaurant_name=restaurant_name,
            role=role,
            phone=phone,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.info("Duplicate registration rejected by unique index")
            raise DuplicateUserError() from exc
        await self.db.refresh(user)
        return user

    async def mark_login(self, user: User) -> None:
        user.last_login = datetime.now(timezone.utc)
        await self.db.commit()

    async def set_password_hash(self, user: User, hashed_password: str) -> None:
        user.hashed_password = hashed_password
        await self.db.commit()

    async def set_active(self, user: User, active: bool) -> None:
        user.is_active = active
        await self.db.commit()
