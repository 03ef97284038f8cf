"""
Tandem — Interaction ledger and rating derivation.

Interactions are append-only.  Each carries an optional rating in [0, 5];
the effective rating of a (user, target) pair is the mean of every positive
rating the user recorded for that target.  Zero ratings are signals without
preference and never enter the mean.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import InteractionType
from app.models.interaction import UserInteraction
from app.repositories.interactions import InteractionRepository
from app.services.cache_service import RecommendationCache

logger = structlog.get_logger("tandem.interaction_service")


class InteractionService:
    """Record interactions and answer rating queries over them."""

    def __init__(self, cache: RecommendationCache) -> None:
        self.cache = cache

    async def record_interaction(
        self,
        user_id: uuid.UUID,
        target_user_id: uuid.UUID,
        interaction_type: InteractionType,
        db_session: AsyncSession,
        rating: float = 0.0,
        context: str | None = None,
    ) -> UserInteraction:
        """Append an interaction and drop the user's cached recommendations.

        ``rating`` is clamped to [0, 5] by the model.  An empty ``context``
        is stored as ``NULL``.
        """
        interaction = UserInteraction(
            user_id=user_id,
            target_user_id=target_user_id,
            interaction_type=interaction_type,
            rating=rating,
            context=context or None,
        )
        await InteractionRepository(db_session).add(interaction)
        await self.cache.invalidate_recommendations(user_id)

        logger.info(
            "interaction_recorded",
            user_id=str(user_id),
            target_user_id=str(target_user_id),
            interaction_type=interaction_type.value,
            rating=interaction.rating,
        )
        return interaction

    async def correct_rating(
        self, interaction_id: uuid.UUID, rating: float, db_session: AsyncSession
    ) -> UserInteraction | None:
        """Overwrite the rating of an existing interaction (clamped)."""
        interactions = InteractionRepository(db_session)
        interaction = await interactions.get(interaction_id)
        if interaction is None:
            return None

        interaction.rating = rating
        await interactions.update(interaction)
        await self.cache.invalidate_recommendations(interaction.user_id)
        logger.info(
            "interaction_rating_corrected",
            interaction_id=str(interaction_id),
            rating=interaction.rating,
        )
        return interaction

    # ── Rating derivation ───────────────────────────────────────────

    async def get_user_ratings(
        self, user_id: uuid.UUID, db_session: AsyncSession
    ) -> dict[uuid.UUID, float]:
        return await InteractionRepository(db_session).get_ratings_by_user(user_id)

    async def get_ratings_for_users(
        self, user_ids: Iterable[uuid.UUID], db_session: AsyncSession
    ) -> dict[uuid.UUID, dict[uuid.UUID, float]]:
        return await InteractionRepository(db_session).get_ratings_by_users(user_ids)

    async def get_users_with_ratings(self, db_session: AsyncSession) -> set[uuid.UUID]:
        return await InteractionRepository(db_session).get_users_with_ratings()

    # ── Queries ─────────────────────────────────────────────────────

    async def get_interaction(
        self, interaction_id: uuid.UUID, db_session: AsyncSession
    ) -> UserInteraction | None:
        return await InteractionRepository(db_session).get(interaction_id)

    async def get_recent_interactions(
        self,
        user_id: uuid.UUID,
        since: datetime,
        db_session: AsyncSession,
        count: int = 100,
    ) -> list[UserInteraction]:
        return await InteractionRepository(db_session).get_recent_since(user_id, since, count)

    async def get_pair_interactions(
        self,
        user_id: uuid.UUID,
        target_user_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> list[UserInteraction]:
        return await InteractionRepository(db_session).get_by_pair(user_id, target_user_id)

    async def list_interactions(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        interaction_type: InteractionType | None = None,
        target_user_id: uuid.UUID | None = None,
    ) -> tuple[list[UserInteraction], int]:
        return await InteractionRepository(db_session).paginate(
            user_id,
            page=max(page, 1),
            page_size=page_size,
            interaction_type=interaction_type,
            target_user_id=target_user_id,
        )

    async def get_interaction_stats(
        self, user_id: uuid.UUID, db_session: AsyncSession
    ) -> dict:
        """Per-type counts plus average ratings given and received."""
        interactions = InteractionRepository(db_session)
        by_type = await interactions.stats_by_type(user_id)
        return {
            "user_id": user_id,
            "total": sum(by_type.values()),
            "by_type": by_type,
            "average_rating_given": await interactions.average_rating_given(user_id),
            "average_rating_received": await interactions.average_rating_received(user_id),
        }

    async def get_average_rating(
        self, user_id: uuid.UUID, db_session: AsyncSession
    ) -> float:
        """Mean positive rating ``user_id`` has received from others."""
        return await InteractionRepository(db_session).average_rating_received(user_id)
