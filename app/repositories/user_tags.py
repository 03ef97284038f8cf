"""
Tandem — UserTag repository (per-user interest weights).
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tag import UserTag


class UserTagRepository:
    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def get_by_user(self, user_id: uuid.UUID) -> list[UserTag]:
        stmt = (
            select(UserTag)
            .where(UserTag.user_id == user_id)
            .order_by(UserTag.weight.desc(), UserTag.created_at)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_by_user(self, user_id: uuid.UUID) -> list[UserTag]:
        stmt = (
            select(UserTag)
            .where(UserTag.user_id == user_id, UserTag.is_active.is_(True))
            .order_by(UserTag.weight.desc(), UserTag.created_at)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_tag(self, tag_id: uuid.UUID) -> list[UserTag]:
        stmt = select(UserTag).where(UserTag.tag_id == tag_id)
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def exists_by_tag(self, tag_id: uuid.UUID) -> bool:
        """True when any relation, active or not, references ``tag_id``."""
        stmt = select(func.count()).select_from(UserTag).where(UserTag.tag_id == tag_id)
        result = await self.db_session.execute(stmt)
        return result.scalar_one() > 0

    async def get_active_by_tags(self, tag_ids: Iterable[uuid.UUID]) -> list[UserTag]:
        """Every active relation on any of ``tag_ids`` in a single query."""
        ids = list(tag_ids)
        if not ids:
            return []
        stmt = select(UserTag).where(
            UserTag.tag_id.in_(ids), UserTag.is_active.is_(True)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_user_and_tag(
        self, user_id: uuid.UUID, tag_id: uuid.UUID
    ) -> UserTag | None:
        stmt = select(UserTag).where(
            UserTag.user_id == user_id, UserTag.tag_id == tag_id
        )
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, user_tag: UserTag) -> UserTag:
        self.db_session.add(user_tag)
        await self.db_session.flush()
        return user_tag

    async def update(self, user_tag: UserTag) -> UserTag:
        await self.db_session.flush()
        return user_tag

    async def delete(self, user_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
        user_tag = await self.get_by_user_and_tag(user_id, tag_id)
        if user_tag is None:
            return False
        await self.db_session.delete(user_tag)
        await self.db_session.flush()
        return True
