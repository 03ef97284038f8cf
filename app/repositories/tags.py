"""
Tandem — Tag repository.

Thin async query layer over the ``tags`` table.  Methods flush but never
commit; the request-scoped session owns the transaction.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import TagCategory
from app.models.tag import Tag


class TagRepository:
    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def get_by_id(self, tag_id: uuid.UUID) -> Tag | None:
        return await self.db_session.get(Tag, tag_id)

    async def get_by_name(self, name: str) -> Tag | None:
        stmt = select(Tag).where(Tag.name == name)
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_category(self, category: TagCategory) -> list[Tag]:
        stmt = (
            select(Tag)
            .where(Tag.category == category, Tag.is_active.is_(True))
            .order_by(Tag.usage_count.desc(), Tag.name)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_popular(self, count: int = 20) -> list[Tag]:
        """Active tags by usage count, most recently used first on ties."""
        stmt = (
            select(Tag)
            .where(Tag.is_active.is_(True))
            .order_by(
                Tag.usage_count.desc(),
                Tag.last_used_at.desc().nulls_last(),
            )
            .limit(count)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def search(self, keyword: str, count: int = 10) -> list[Tag]:
        """Case-insensitive substring search over name and description."""
        needle = keyword.strip().lower()
        stmt = (
            select(Tag)
            .where(
                Tag.is_active.is_(True),
                func.lower(Tag.name).contains(needle, autoescape=True)
                | func.lower(Tag.description).contains(needle, autoescape=True),
            )
            .order_by(Tag.usage_count.desc(), Tag.name)
            .limit(count)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, tag: Tag) -> Tag:
        self.db_session.add(tag)
        await self.db_session.flush()
        return tag

    async def update(self, tag: Tag) -> Tag:
        await self.db_session.flush()
        return tag

    async def delete(self, tag_id: uuid.UUID) -> bool:
        tag = await self.get_by_id(tag_id)
        if tag is None:
            return False
        await self.db_session.delete(tag)
        await self.db_session.flush()
        return True

    async def exists_by_name(self, name: str) -> bool:
        stmt = select(func.count()).select_from(Tag).where(Tag.name == name)
        result = await self.db_session.execute(stmt)
        return (result.scalar_one() or 0) > 0
