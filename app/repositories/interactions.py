"""
Tandem — UserInteraction repository.

Besides plain row access this module owns the rating-derivation queries used
by collaborative filtering: the effective rating of a (user, target) pair is
the mean of every positive rating the user recorded for that target.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import InteractionType
from app.models.interaction import UserInteraction


class InteractionRepository:
    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    # ── Row access ─────────────────────────────────────────────────────

    async def get(self, interaction_id: uuid.UUID) -> UserInteraction | None:
        return await self.db_session.get(UserInteraction, interaction_id)

    async def get_by_user(self, user_id: uuid.UUID) -> list[UserInteraction]:
        stmt = (
            select(UserInteraction)
            .where(UserInteraction.user_id == user_id)
            .order_by(UserInteraction.created_at.desc())
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_user_and_type(
        self, user_id: uuid.UUID, interaction_type: InteractionType
    ) -> list[UserInteraction]:
        stmt = (
            select(UserInteraction)
            .where(
                UserInteraction.user_id == user_id,
                UserInteraction.interaction_type == interaction_type,
            )
            .order_by(UserInteraction.created_at.desc())
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_pair(
        self, user_id: uuid.UUID, target_user_id: uuid.UUID
    ) -> list[UserInteraction]:
        stmt = (
            select(UserInteraction)
            .where(
                UserInteraction.user_id == user_id,
                UserInteraction.target_user_id == target_user_id,
            )
            .order_by(UserInteraction.created_at.desc())
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_recent_since(
        self, user_id: uuid.UUID, since: datetime, count: int = 100
    ) -> list[UserInteraction]:
        stmt = (
            select(UserInteraction)
            .where(
                UserInteraction.user_id == user_id,
                UserInteraction.created_at >= since,
            )
            .order_by(UserInteraction.created_at.desc())
            .limit(count)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, interaction: UserInteraction) -> UserInteraction:
        self.db_session.add(interaction)
        await self.db_session.flush()
        return interaction

    async def update(self, interaction: UserInteraction) -> UserInteraction:
        await self.db_session.flush()
        return interaction

    async def paginate(
        self,
        user_id: uuid.UUID,
        page: int,
        page_size: int,
        interaction_type: InteractionType | None = None,
        target_user_id: uuid.UUID | None = None,
    ) -> tuple[list[UserInteraction], int]:
        stmt = select(UserInteraction).where(UserInteraction.user_id == user_id)
        if interaction_type is not None:
            stmt = stmt.where(UserInteraction.interaction_type == interaction_type)
        if target_user_id is not None:
            stmt = stmt.where(UserInteraction.target_user_id == target_user_id)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db_session.execute(count_stmt)).scalar_one()

        page_stmt = (
            stmt.order_by(UserInteraction.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db_session.execute(page_stmt)
        return list(result.scalars().all()), int(total)

    # ── Rating derivation ──────────────────────────────────────────────

    async def get_ratings_by_user(self, user_id: uuid.UUID) -> dict[uuid.UUID, float]:
        """Map of target → mean positive rating for one user."""
        stmt = (
            select(UserInteraction.target_user_id, func.avg(UserInteraction.rating))
            .where(UserInteraction.user_id == user_id, UserInteraction.rating > 0)
            .group_by(UserInteraction.target_user_id)
        )
        result = await self.db_session.execute(stmt)
        return {target: float(avg) for target, avg in result.all()}

    async def get_ratings_by_users(
        self, user_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, dict[uuid.UUID, float]]:
        """Batch form of :meth:`get_ratings_by_user`, one grouped query."""
        ids = list(user_ids)
        if not ids:
            return {}
        stmt = (
            select(
                UserInteraction.user_id,
                UserInteraction.target_user_id,
                func.avg(UserInteraction.rating),
            )
            .where(UserInteraction.user_id.in_(ids), UserInteraction.rating > 0)
            .group_by(UserInteraction.user_id, UserInteraction.target_user_id)
        )
        result = await self.db_session.execute(stmt)

        ratings: dict[uuid.UUID, dict[uuid.UUID, float]] = defaultdict(dict)
        for user_id, target, avg in result.all():
            ratings[user_id][target] = float(avg)
        return dict(ratings)

    async def get_users_with_ratings(self) -> set[uuid.UUID]:
        stmt = select(UserInteraction.user_id).where(UserInteraction.rating > 0).distinct()
        result = await self.db_session.execute(stmt)
        return set(result.scalars().all())

    # ── Aggregates ─────────────────────────────────────────────────────

    async def stats_by_type(self, user_id: uuid.UUID) -> dict[InteractionType, int]:
        stmt = (
            select(UserInteraction.interaction_type, func.count())
            .where(UserInteraction.user_id == user_id)
            .group_by(UserInteraction.interaction_type)
        )
        result = await self.db_session.execute(stmt)
        return {itype: int(n) for itype, n in result.all()}

    async def average_rating_given(self, user_id: uuid.UUID) -> float:
        stmt = select(func.avg(UserInteraction.rating)).where(
            UserInteraction.user_id == user_id, UserInteraction.rating > 0
        )
        avg = (await self.db_session.execute(stmt)).scalar_one_or_none()
        return float(avg) if avg is not None else 0.0

    async def average_rating_received(self, target_user_id: uuid.UUID) -> float:
        stmt = select(func.avg(UserInteraction.rating)).where(
            UserInteraction.target_user_id == target_user_id, UserInteraction.rating > 0
        )
        avg = (await self.db_session.execute(stmt)).scalar_one_or_none()
        return float(avg) if avg is not None else 0.0
