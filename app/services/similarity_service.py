"""
Tandem — Tag-based and collaborative-filtering similarity.

Tag-based scoring:
  For every active tag the querying user A holds, each other user B holding
  the same tag contributes

      min(w_A, w_B) / max(w_A, w_B) × 0.8

  summed across shared tags.  A pair where both weights are 0 contributes 0.

Collaborative filtering:
  1. Build A's rating map (target → mean positive rating).
  2. Batch-load the rating maps of every other rater in one query.
  3. Pearson correlation over commonly rated targets; fewer than 2 common
     targets, or a denominator below 1e-10, gives 0.
  4. Keep neighbours with similarity > 0.1, strongest 50 first.
  5. For each neighbour and each target A has not rated (and which is not A),
     accumulate similarity × neighbour_rating.  Score = accumulated / 5.
"""

from __future__ import annotations

import math
import uuid
from collections import defaultdict

import numpy as np
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.enums import MatchType
from app.repositories.user_tags import UserTagRepository
from app.schemas.recommendation import RecommendationResult
from app.services.interaction_service import InteractionService
from app.utils.numeric import clamp

logger = structlog.get_logger("tandem.similarity_service")

TAG_BASE_SIMILARITY: float = 0.8
MAX_RATING: float = 5.0
_PEARSON_EPSILON: float = 1e-10


def tag_pair_similarity(weight_a: float, weight_b: float) -> float:
    """Contribution of one shared tag held with weights ``weight_a``/``weight_b``."""
    high = max(weight_a, weight_b)
    if high <= 0.0:
        return 0.0
    return min(weight_a, weight_b) / high * TAG_BASE_SIMILARITY


def pearson_correlation(
    ratings_a: dict[uuid.UUID, float],
    ratings_b: dict[uuid.UUID, float],
    min_common: int = 2,
) -> float:
    """Pearson correlation of two rating maps over their common targets.

    Returns 0.0 for degenerate input instead of raising.
    """
    common = [t for t in ratings_a if t in ratings_b]
    if len(common) < min_common:
        return 0.0

    x = np.array([ratings_a[t] for t in common], dtype=float)
    y = np.array([ratings_b[t] for t in common], dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()

    denominator = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if denominator < _PEARSON_EPSILON:
        return 0.0
    return clamp(float(np.dot(dx, dy)) / denominator, -1.0, 1.0)


class SimilarityService:
    """Tag-overlap and rating-correlation recommendation strategies."""

    def __init__(self, interaction_service: InteractionService) -> None:
        self.interaction_service = interaction_service

        settings = get_settings()
        self.similarity_threshold: float = settings.CF_SIMILARITY_THRESHOLD  # 0.1
        self.neighbourhood_size: int = settings.CF_NEIGHBOURHOOD_SIZE       # 50
        self.min_common_targets: int = settings.CF_MIN_COMMON_TARGETS       # 2

    # ── Tag-based ───────────────────────────────────────────────────

    async def tag_based_recommendations(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        count: int = 20,
    ) -> list[RecommendationResult]:
        """Rank other users by summed tag-weight overlap with ``user_id``."""
        log = logger.bind(user_id=str(user_id))
        user_tags = UserTagRepository(db_session)

        own = await user_tags.get_active_by_user(user_id)
        if not own:
            log.info("tag_based_no_tags")
            return []
        own_weights = {ut.tag_id: ut.weight for ut in own}

        scores: dict[uuid.UUID, float] = defaultdict(float)
        common_tags: dict[uuid.UUID, int] = defaultdict(int)
        for other in await user_tags.get_active_by_tags(own_weights):
            if other.user_id == user_id:
                continue
            scores[other.user_id] += tag_pair_similarity(
                own_weights[other.tag_id], other.weight
            )
            common_tags[other.user_id] += 1

        ranked = sorted(scores.items(), key=lambda kv: (-kv[1], str(kv[0])))[:count]
        log.info("tag_based_done", candidates=len(scores), returned=len(ranked))
        return [
            RecommendationResult(
                user_id=candidate,
                score=raw,
                match_type=MatchType.TAG_BASED,
                reason="tag similarity",
                metadata={
                    "common_tags": common_tags[candidate],
                    "similarity_score": round(raw, 6),
                },
            )
            for candidate, raw in ranked
        ]

    # ── Collaborative filtering ─────────────────────────────────────

    async def calculate_user_similarity(
        self,
        user_a: uuid.UUID,
        user_b: uuid.UUID,
        db_session: AsyncSession,
    ) -> float:
        """Pearson similarity of two users' derived rating vectors."""
        ratings = await self.interaction_service.get_ratings_for_users(
            [user_a, user_b], db_session
        )
        return pearson_correlation(
            ratings.get(user_a, {}),
            ratings.get(user_b, {}),
            self.min_common_targets,
        )

    async def collaborative_recommendations(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        count: int = 20,
    ) -> list[RecommendationResult]:
        """User-user collaborative filtering over implicit ratings."""
        log = logger.bind(user_id=str(user_id))

        own_ratings = await self.interaction_service.get_user_ratings(user_id, db_session)
        if not own_ratings:
            log.info("collaborative_no_ratings")
            return []

        pool = await self.interaction_service.get_users_with_ratings(db_session)
        pool.discard(user_id)
        pool_ratings = await self.interaction_service.get_ratings_for_users(pool, db_session)

        # Steps 3-4: neighbourhood
        neighbours: list[tuple[uuid.UUID, float]] = []
        for other_id, other_ratings in pool_ratings.items():
            similarity = pearson_correlation(
                own_ratings, other_ratings, self.min_common_targets
            )
            if similarity > self.similarity_threshold:
                neighbours.append((other_id, similarity))
        neighbours.sort(key=lambda kv: (-kv[1], str(kv[0])))
        neighbours = neighbours[: self.neighbourhood_size]

        # Step 5: weighted accumulation over unseen targets
        predicted: dict[uuid.UUID, float] = defaultdict(float)
        for other_id, similarity in neighbours:
            for target, rating in pool_ratings[other_id].items():
                if target == user_id or target in own_ratings:
                    continue
                predicted[target] += similarity * rating

        ranked = sorted(predicted.items(), key=lambda kv: (-kv[1], str(kv[0])))[:count]
        log.info(
            "collaborative_done",
            pool_size=len(pool_ratings),
            neighbours=len(neighbours),
            returned=len(ranked),
        )
        return [
            RecommendationResult(
                user_id=target,
                score=accumulated / MAX_RATING,
                match_type=MatchType.COLLABORATIVE_FILTERING,
                reason="collaborative filtering",
                metadata={
                    "similar_users": len(neighbours),
                    "predicted_rating": round(accumulated, 6),
                },
            )
            for target, accumulated in ranked
        ]
