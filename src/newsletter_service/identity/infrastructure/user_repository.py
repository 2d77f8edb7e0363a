"""
User Repository
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter_service.identity.infrastructure.models import UserModel


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_stored_credentials(self, username: str) -> Optional[Tuple[UUID, str]]:
        """Return ``(user_id, password_hash)`` for ``username``, if it exists."""
        stmt = select(UserModel.id, UserModel.password_hash).where(UserModel.username == username)
        row = (await self.session.execute(stmt)).one_or_none()
        return (row.id, row.password_hash) if row else None

    async def get_username(self, user_id: UUID) -> Optional[str]:
        stmt = select(UserModel.username).where(UserModel.id == user_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def add(self, username: str, password_hash: str) -> UUID:
        now = datetime.now(timezone.utc)
        model = UserModel(
            id=uuid4(),
            username=username,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
        )
