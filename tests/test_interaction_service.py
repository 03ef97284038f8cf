"""Tests for InteractionService — the append-only interaction ledger."""
import uuid
import warnings

import pytest
from sqlalchemy.exc import SAWarning

from app.models.enums import InteractionType
from app.schemas.recommendation import RecommendationResult


class TestRecordInteraction:
    """Appending interactions."""

    @pytest.mark.asyncio
    async def test_rating_clamped(self, interaction_service, db_session, user_a, user_b):
        interaction = await interaction_service.record_interaction(
            user_a, user_b, InteractionType.LIKE, db_session, rating=7.5
        )
        assert interaction.rating == 5.0

    @pytest.mark.asyncio
    async def test_negative_rating_clamped(self, interaction_service, db_session, user_a, user_b):
        interaction = await interaction_service.record_interaction(
            user_a, user_b, InteractionType.COMMENT, db_session, rating=-1.0
        )
        assert interaction.rating == 0.0

    @pytest.mark.asyncio
    async def test_empty_context_stored_as_null(
        self, interaction_service, db_session, user_a, user_b
    ):
        interaction = await interaction_service.record_interaction(
            user_a, user_b, InteractionType.SEND_MESSAGE, db_session, context=""
        )
        assert interaction.context is None

    @pytest.mark.asyncio
    async def test_repeated_interactions_all_kept(
        self, interaction_service, db_session, user_a, user_b
    ):
        for _ in range(3):
            await interaction_service.record_interaction(
                user_a, user_b, InteractionType.VIEW_PROFILE, db_session
            )
        history = await interaction_service.get_pair_interactions(user_a, user_b, db_session)
        assert len(history) == 3

    @pytest.mark.asyncio
    async def test_invalidates_only_own_recommendations(
        self, interaction_service, cache, db_session, user_a, user_b
    ):
        cached = [
            RecommendationResult(
                user_id=uuid.uuid4(), score=0.5, match_type="hybrid", reason="x", metadata={}
            )
        ]
        await cache.set_recommendations(user_a, cached)
        await cache.set_recommendations(user_b, cached)

        await interaction_service.record_interaction(
            user_a, user_b, InteractionType.FOLLOW, db_session
        )

        assert await cache.get_recommendations(user_a) is None
        assert await cache.get_recommendations(user_b) is not None


class TestCorrectRating:
    """Rating corrections on existing rows."""

    @pytest.mark.asyncio
    async def test_correct_rating(self, interaction_service, db_session, user_a, user_b):
        interaction = await interaction_service.record_interaction(
            user_a, user_b, InteractionType.LIKE, db_session, rating=2.0
        )
        corrected = await interaction_service.correct_rating(interaction.id, 4.0, db_session)
        assert corrected.rating == pytest.approx(4.0)
        assert await interaction_service.get_user_ratings(user_a, db_session) == {
            user_b: pytest.approx(4.0)
        }

    @pytest.mark.asyncio
    async def test_correct_unknown_interaction(self, interaction_service, db_session):
        assert await interaction_service.correct_rating(uuid.uuid4(), 3.0, db_session) is None


class TestInteractionQueries:
    """Pagination, ratings and statistics."""

    @pytest.mark.asyncio
    async def test_list_filters_and_pages(
        self, interaction_service, rate, db_session, user_a, user_b, user_c
    ):
        await rate(user_a, user_b, 0.0, InteractionType.VIEW_PROFILE)
        await rate(user_a, user_b, 3.0, InteractionType.LIKE)
        await rate(user_a, user_c, 4.0, InteractionType.LIKE)

        likes, total = await interaction_service.list_interactions(
            user_a, db_session, interaction_type=InteractionType.LIKE
        )
        assert total == 2
        assert {i.target_user_id for i in likes} == {user_b, user_c}

        to_b, total = await interaction_service.list_interactions(
            user_a, db_session, target_user_id=user_b
        )
        assert total == 2

        page, total = await interaction_service.list_interactions(
            user_a, db_session, page=2, page_size=2
        )
        assert total == 3
        assert len(page) == 1

    @pytest.mark.asyncio
    async def test_ratings_for_users_batch(
        self, interaction_service, rate, db_session, user_a, user_b, user_c
    ):
        target = uuid.uuid4()
        await rate(user_a, target, 4.0)
        await rate(user_b, target, 2.0)
        await rate(user_c, target, 0.0)

        ratings = await interaction_service.get_ratings_for_users(
            [user_a, user_b, user_c], db_session
        )

        assert ratings[user_a] == {target: pytest.approx(4.0)}
        assert ratings[user_b] == {target: pytest.approx(2.0)}
        assert user_c not in ratings

    @pytest.mark.asyncio
    async def test_users_with_ratings(
        self, interaction_service, rate, db_session, user_a, user_b, user_c
    ):
        await rate(user_a, user_c, 3.0)
        await rate(user_b, user_c, 0.0, InteractionType.VIEW_PROFILE)
        assert await interaction_service.get_users_with_ratings(db_session) == {user_a}

    @pytest.mark.asyncio
    async def test_raters_query_is_warning_free(
        self, interaction_service, rate, db_session, user_a, user_b
    ):
        """Each rater appears once and the DISTINCT query emits no SAWarning."""
        await rate(user_a, user_b, 3.0)
        await rate(user_a, uuid.uuid4(), 4.0)
        with warnings.catch_warnings():
            warnings.simplefilter("error", SAWarning)
            raters = await interaction_service.get_users_with_ratings(db_session)
        assert raters == {user_a}

    @pytest.mark.asyncio
    async def test_stats(self, interaction_service, rate, db_session, user_a, user_b, user_c):
        await rate(user_a, user_b, 4.0, InteractionType.LIKE)
        await rate(user_a, user_c, 2.0, InteractionType.LIKE)
        await rate(user_a, user_b, 0.0, InteractionType.VIEW_PROFILE)
        await rate(user_b, user_a, 5.0, InteractionType.FOLLOW)

        stats = await interaction_service.get_interaction_stats(user_a, db_session)

        assert stats["total"] == 3
        assert stats["by_type"] == {InteractionType.LIKE: 2, InteractionType.VIEW_PROFILE: 1}
        assert stats["average_rating_given"] == pytest.approx(3.0)
        assert stats["average_rating_received"] == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_average_rating_without_ratings(self, interaction_service, db_session, user_a):
        assert await interaction_service.get_average_rating(user_a, db_session) == 0.0
