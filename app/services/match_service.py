"""
Tandem — Match proposal lifecycle.

State machine:

    pending ──► accepted | rejected | cancelled | expired

Every non-pending state is terminal.  Re-applying the current status is a
no-op; moving out of a terminal state is rejected.  Accepting a match also
records an implicit ``like`` (rating 5.0) from the accepting user, so the
acceptance feeds collaborative filtering.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.enums import InteractionType, MatchStatus, MatchType
from app.models.match import UserMatch
from app.repositories.matches import MatchRepository
from app.schemas.match import MatchResponse
from app.services.cache_service import RecommendationCache
from app.services.errors import NotFoundError, OwnershipViolation, ValidationFailure
from app.services.interaction_service import InteractionService

logger = structlog.get_logger("tandem.match_service")

ACCEPTED_LIKE_RATING: float = 5.0
ACCEPTED_LIKE_CONTEXT = "match accepted"


class MatchService:
    """Create, transition and query match proposals."""

    def __init__(
        self,
        cache: RecommendationCache,
        interaction_service: InteractionService,
    ) -> None:
        self.cache = cache
        self.interaction_service = interaction_service
        self.expiry_days: int = get_settings().MATCH_EXPIRY_DAYS

    # ── Writes ──────────────────────────────────────────────────────

    async def process_match(
        self,
        user_id: uuid.UUID,
        matched_user_id: uuid.UUID,
        score: float,
        match_type: MatchType,
        db_session: AsyncSession,
    ) -> UserMatch:
        """Create a pending proposal, or update the score of an existing one.

        Existing rows keep their status and match type.
        """
        if user_id == matched_user_id:
            raise ValidationFailure("matched_user_id", "A user cannot be matched with themself")

        user_match = await MatchRepository(db_session).upsert(
            user_id, matched_user_id, score, match_type
        )
        await self.cache.invalidate_user_matches(user_id)
        logger.info(
            "match_upserted",
            match_id=str(user_match.id),
            user_id=str(user_id),
            matched_user_id=str(matched_user_id),
            score=user_match.score,
            status=user_match.status.value,
        )
        return user_match

    async def update_status(
        self,
        user_id: uuid.UUID,
        matched_user_id: uuid.UUID,
        status: MatchStatus,
        db_session: AsyncSession,
        notes: str | None = None,
    ) -> UserMatch | None:
        """Transition the (user, matched_user) proposal to ``status``.

        Returns ``None`` when the pair has no proposal.

        Raises
        ------
        ValidationFailure
            On an attempt to leave a terminal state (field ``status``).
        """
        user_match = await MatchRepository(db_session).get_by_pair(user_id, matched_user_id)
        if user_match is None:
            return None
        return await self._transition(user_match, status, notes, db_session)

    async def update_status_by_id(
        self,
        match_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        status: MatchStatus,
        db_session: AsyncSession,
        notes: str | None = None,
    ) -> UserMatch:
        user_match = await MatchRepository(db_session).get(match_id)
        if user_match is None:
            raise NotFoundError("Match", match_id)
        if user_match.user_id != acting_user_id:
            raise OwnershipViolation("You may only update your own matches.")
        return await self._transition(user_match, status, notes, db_session)

    async def expire_stale_matches(
        self, db_session: AsyncSession, older_than_days: int | None = None
    ) -> int:
        """Expire pending proposals created more than ``older_than_days`` ago.

        Every proposer who lost a pending match has their cached match list
        dropped.  Returns the number of expired rows.
        """
        days = older_than_days if older_than_days is not None else self.expiry_days
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        owners = await MatchRepository(db_session).expire_pending_before(cutoff)
        for owner in set(owners):
            await self.cache.invalidate_user_matches(owner)
        logger.info(
            "stale_matches_expired",
            older_than_days=days,
            expired=len(owners),
            users=len(set(owners)),
        )
        return len(owners)

    # ── Reads ───────────────────────────────────────────────────────

    async def get_match(self, match_id: uuid.UUID, db_session: AsyncSession) -> UserMatch | None:
        return await MatchRepository(db_session).get(match_id)

    async def get_user_matches(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        status: MatchStatus | None = None,
        match_type: MatchType | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[MatchResponse], int]:
        """Paginated proposals of ``user_id``, newest first.

        The unfiltered list is memoized under ``user_matches:{user}``; pages
        and filters are applied in memory on a hit.
        """
        page = max(page, 1)
        unfiltered = status is None and match_type is None

        if unfiltered:
            cached = await self.cache.get_user_matches(user_id)
            if cached is not None:
                start = (page - 1) * page_size
                return cached[start:start + page_size], len(cached)

            rows = await MatchRepository(db_session).get_by_user(user_id)
            everything = [MatchResponse.model_validate(m) for m in rows]
            await self.cache.set_user_matches(user_id, everything)
            start = (page - 1) * page_size
            return everything[start:start + page_size], len(everything)

        rows, total = await MatchRepository(db_session).paginate(
            user_id, page, page_size, status=status, match_type=match_type
        )
        return [MatchResponse.model_validate(m) for m in rows], total

    async def get_pending_matches(
        self, user_id: uuid.UUID, db_session: AsyncSession, count: int = 20
    ) -> list[UserMatch]:
        return await MatchRepository(db_session).get_pending(user_id, count)

    async def get_high_score_matches(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        min_score: float = 0.7,
        count: int = 10,
    ) -> list[UserMatch]:
        return await MatchRepository(db_session).get_high_score(user_id, min_score, count)

    async def get_match_stats(self, user_id: uuid.UUID, db_session: AsyncSession) -> dict:
        matches = MatchRepository(db_session)
        by_status = await matches.count_by_status(user_id)
        return {
            "user_id": user_id,
            "total": sum(by_status.values()),
            "by_status": {s: by_status.get(s, 0) for s in MatchStatus},
            "by_type": await matches.count_by_type(user_id),
            "average_score": await matches.average_score(user_id),
        }

    # ── Internals ───────────────────────────────────────────────────

    async def _transition(
        self,
        user_match: UserMatch,
        status: MatchStatus,
        notes: str | None,
        db_session: AsyncSession,
    ) -> UserMatch:
        log = logger.bind(
            match_id=str(user_match.id),
            from_status=user_match.status.value,
            to_status=status.value,
        )

        if user_match.status == status:
            log.debug("match_status_unchanged")
            return user_match
        if user_match.status.is_terminal:
            raise ValidationFailure(
                "status",
                f"Match is already {user_match.status.value} and cannot become {status.value}",
            )

        user_match.apply_status(status)
        if notes is not None:
            user_match.notes = notes
        await MatchRepository(db_session).update(user_match)

        if status is MatchStatus.ACCEPTED:
            await self.interaction_service.record_interaction(
                user_match.user_id,
                user_match.matched_user_id,
                InteractionType.LIKE,
                db_session,
                rating=ACCEPTED_LIKE_RATING,
                context=ACCEPTED_LIKE_CONTEXT,
            )

        await self.cache.invalidate_user_matches(user_match.user_id)
        log.info("match_status_changed")
        return user_match
