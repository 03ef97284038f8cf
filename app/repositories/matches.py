"""
Tandem — UserMatch repository.

``upsert`` is the only write path for new proposals: a single
``INSERT … ON CONFLICT (user_id, matched_user_id) DO UPDATE`` so that two
concurrent callers on the same ordered pair can never produce a duplicate.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import MatchStatus, MatchType
from app.models.match import UserMatch
from app.utils.numeric import clamp

# Both dialects expose the same on_conflict_do_update() API.
_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class MatchRepository:
    def __init__(self, db_session: AsyncSession) -> None:
        self.db_session = db_session

    async def get(self, match_id: uuid.UUID) -> UserMatch | None:
        return await self.db_session.get(UserMatch, match_id)

    async def get_by_user(self, user_id: uuid.UUID) -> list[UserMatch]:
        stmt = (
            select(UserMatch)
            .where(UserMatch.user_id == user_id)
            .order_by(UserMatch.created_at.desc())
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_user_and_status(
        self, user_id: uuid.UUID, status: MatchStatus
    ) -> list[UserMatch]:
        stmt = (
            select(UserMatch)
            .where(UserMatch.user_id == user_id, UserMatch.status == status)
            .order_by(UserMatch.created_at.desc())
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_pair(
        self, user_id: uuid.UUID, matched_user_id: uuid.UUID
    ) -> UserMatch | None:
        stmt = select(UserMatch).where(
            UserMatch.user_id == user_id,
            UserMatch.matched_user_id == matched_user_id,
        )
        result = await self.db_session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending(self, user_id: uuid.UUID, count: int = 20) -> list[UserMatch]:
        stmt = (
            select(UserMatch)
            .where(UserMatch.user_id == user_id, UserMatch.status == MatchStatus.PENDING)
            .order_by(UserMatch.score.desc())
            .limit(count)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def get_high_score(
        self, user_id: uuid.UUID, min_score: float = 0.7, count: int = 10
    ) -> list[UserMatch]:
        stmt = (
            select(UserMatch)
            .where(UserMatch.user_id == user_id, UserMatch.score >= min_score)
            .order_by(UserMatch.score.desc())
            .limit(count)
        )
        result = await self.db_session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, user_match: UserMatch) -> UserMatch:
        self.db_session.add(user_match)
        await self.db_session.flush()
        return user_match

    async def update(self, user_match: UserMatch) -> UserMatch:
        await self.db_session.flush()
        return user_match

    async def exists_by_pair(self, user_id: uuid.UUID, matched_user_id: uuid.UUID) -> bool:
        stmt = (
            select(func.count())
            .select_from(UserMatch)
            .where(
                UserMatch.user_id == user_id,
                UserMatch.matched_user_id == matched_user_id,
            )
        )
        return (await self.db_session.execute(stmt)).scalar_one() > 0

    async def upsert(
        self,
        user_id: uuid.UUID,
        matched_user_id: uuid.UUID,
        score: float,
        match_type: MatchType,
    ) -> UserMatch:
        """Insert a pending proposal or update the existing pair's score.

        Status and match type of an existing row are left untouched.
        """
        dialect = self.db_session.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Match upsert is not supported on {dialect!r}")

        stmt = insert(UserMatch).values(
            id=uuid.uuid4(),
            user_id=user_id,
            matched_user_id=matched_user_id,
            score=clamp(score, 0.0, 1.0),
            match_type=match_type,
            status=MatchStatus.PENDING,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "matched_user_id"],
            set_={"score": stmt.excluded.score},
        )
        await self.db_session.execute(stmt)

        refreshed = (
            select(UserMatch)
            .where(
                UserMatch.user_id == user_id,
                UserMatch.matched_user_id == matched_user_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db_session.execute(refreshed)
        return result.scalar_one()

    async def paginate(
        self,
        user_id: uuid.UUID,
        page: int,
        page_size: int,
        status: MatchStatus | None = None,
        match_type: MatchType | None = None,
    ) -> tuple[list[UserMatch], int]:
        stmt = select(UserMatch).where(UserMatch.user_id == user_id)
        if status is not None:
            stmt = stmt.where(UserMatch.status == status)
        if match_type is not None:
            stmt = stmt.where(UserMatch.match_type == match_type)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db_session.execute(count_stmt)).scalar_one()

        page_stmt = (
            stmt.order_by(UserMatch.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db_session.execute(page_stmt)
        return list(result.scalars().all()), int(total)

    async def count_by_status(self, user_id: uuid.UUID) -> dict[MatchStatus, int]:
        stmt = (
            select(UserMatch.status, func.count())
            .where(UserMatch.user_id == user_id)
            .group_by(UserMatch.status)
        )
        result = await self.db_session.execute(stmt)
        return {status: int(n) for status, n in result.all()}

    async def count_by_type(self, user_id: uuid.UUID) -> dict[MatchType, int]:
        stmt = (
            select(UserMatch.match_type, func.count())
            .where(UserMatch.user_id == user_id)
            .group_by(UserMatch.match_type)
        )
        result = await self.db_session.execute(stmt)
        return {match_type: int(n) for match_type, n in result.all()}

    async def average_score(self, user_id: uuid.UUID) -> float:
        stmt = select(func.avg(UserMatch.score)).where(UserMatch.user_id == user_id)
        avg = (await self.db_session.execute(stmt)).scalar_one_or_none()
        return float(avg) if avg is not None else 0.0

    async def expire_pending_before(self, cutoff: datetime) -> list[uuid.UUID]:
        """Mark every pending proposal created before ``cutoff`` as expired.

        Returns the proposer of each expired row, one entry per row.
        """
        stmt = (
            update(UserMatch)
            .where(
                UserMatch.status == MatchStatus.PENDING,
                UserMatch.created_at < cutoff,
            )
            .values(status=MatchStatus.EXPIRED)
            .returning(UserMatch.id, UserMatch.user_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db_session.execute(stmt)
        return [row.user_id for row in result.all()]
