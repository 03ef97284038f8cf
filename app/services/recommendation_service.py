"""
Tandem — Hybrid recommendation aggregator.

Fuses the independent strategies into one ranked list:

  hybrid(u) = Σ_strategy weight_strategy × score_strategy(u)

Default weights: tag 0.4, collaborative 0.3, location 0.2, random 0.1.
Location runs only when the caller supplies a position; random exploration
samples ``count // 4`` raters uniformly (base score 0.1).

Strategies run one after another on the request's session since an
``AsyncSession`` is not safe for concurrent use.
"""

from __future__ import annotations

import random
import uuid
from collections import defaultdict
from collections.abc import Iterable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.enums import MatchType
from app.schemas.recommendation import RecommendationResult
from app.services.cache_service import RecommendationCache
from app.services.interaction_service import InteractionService
from app.services.location_service import Location, LocationService
from app.services.similarity_service import SimilarityService

logger = structlog.get_logger("tandem.recommendation_service")

STRATEGY_TAG = "tag_based"
STRATEGY_COLLABORATIVE = "collaborative_filtering"
STRATEGY_LOCATION = "location_based"
STRATEGY_RANDOM = "random"


def merge_weighted(
    strategy_results: Iterable[tuple[str, float, list[RecommendationResult]]],
    count: int,
) -> list[RecommendationResult]:
    """Sum weighted per-strategy scores per candidate and rank.

    ``strategy_results`` yields ``(strategy_name, weight, results)``.  Ties on
    the total are broken by user id so the output is deterministic.
    """
    totals: dict[uuid.UUID, float] = defaultdict(float)
    contributions: dict[uuid.UUID, dict[str, float]] = defaultdict(dict)

    for strategy, weight, results in strategy_results:
        for result in results:
            weighted = result.score * weight
            totals[result.user_id] += weighted
            contributions[result.user_id][strategy] = round(
                contributions[result.user_id].get(strategy, 0.0) + weighted, 6
            )

    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], str(kv[0])))[:count]
    return [
        RecommendationResult(
            user_id=candidate,
            score=total,
            match_type=MatchType.HYBRID,
            reason="hybrid recommendation algorithm",
            metadata={"contributions": contributions[candidate]},
        )
        for candidate, total in ranked
    ]


class RecommendationService:
    """Hybrid recommender with cache-through memoization."""

    def __init__(
        self,
        cache: RecommendationCache,
        interaction_service: InteractionService,
        similarity_service: SimilarityService,
        location_service: LocationService,
        rng: random.Random | None = None,
    ) -> None:
        self.cache = cache
        self.interaction_service = interaction_service
        self.similarity_service = similarity_service
        self.location_service = location_service
        self.rng = rng or random.Random()

        settings = get_settings()
        self.weights: dict[str, float] = {
            STRATEGY_TAG: settings.TAG_WEIGHT,                        # 0.4
            STRATEGY_COLLABORATIVE: settings.COLLABORATIVE_WEIGHT,    # 0.3
            STRATEGY_LOCATION: settings.LOCATION_WEIGHT,              # 0.2
            STRATEGY_RANDOM: settings.RANDOM_WEIGHT,                  # 0.1
        }
        self.random_base_score: float = settings.RANDOM_BASE_SCORE

    # ── Public API ──────────────────────────────────────────────────

    async def get_user_recommendations(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        location: Location | None = None,
        count: int = 20,
    ) -> list[RecommendationResult]:
        """Cached hybrid recommendations for ``user_id``.

        One entry is kept per user.  It is reused only for a request with the
        same position (or none) and a ``count`` no larger than the one it was
        computed for; any other request recomputes and replaces it.
        """
        log = logger.bind(user_id=str(user_id), count=count)
        latitude = location.latitude if location is not None else None
        longitude = location.longitude if location is not None else None

        entry = await self.cache.get_recommendation_entry(user_id)
        if entry is not None and entry.serves(count, latitude, longitude):
            log.info("recommendations_cache_hit", cached=len(entry.results))
            return entry.results[:count]

        log.info("recommendations_cache_miss", stale_entry=entry is not None)
        results = await self.hybrid_recommendations(
            user_id, db_session, location=location, count=count
        )
        await self.cache.set_recommendations(
            user_id, results, requested=count, latitude=latitude, longitude=longitude
        )
        return results

    async def hybrid_recommendations(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        location: Location | None = None,
        count: int = 20,
    ) -> list[RecommendationResult]:
        strategy_results: list[tuple[str, float, list[RecommendationResult]]] = [
            (
                STRATEGY_TAG,
                self.weights[STRATEGY_TAG],
                await self.similarity_service.tag_based_recommendations(
                    user_id, db_session, count=count
                ),
            ),
            (
                STRATEGY_COLLABORATIVE,
                self.weights[STRATEGY_COLLABORATIVE],
                await self.similarity_service.collaborative_recommendations(
                    user_id, db_session, count=count
                ),
            ),
        ]
        if location is not None:
            strategy_results.append(
                (
                    STRATEGY_LOCATION,
                    self.weights[STRATEGY_LOCATION],
                    await self.location_service.location_recommendations(
                        user_id, location, db_session, count=count
                    ),
                )
            )
        strategy_results.append(
            (
                STRATEGY_RANDOM,
                self.weights[STRATEGY_RANDOM],
                await self.random_recommendations(user_id, db_session, count // 4),
            )
        )

        merged = merge_weighted(strategy_results, count)
        logger.info(
            "hybrid_recommendations_done",
            user_id=str(user_id),
            strategy_sizes={name: len(results) for name, _, results in strategy_results},
            returned=len(merged),
        )
        return merged

    async def random_recommendations(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        count: int,
    ) -> list[RecommendationResult]:
        """Uniform sample of other raters, each with the base exploration score."""
        if count <= 0:
            return []
        pool = await self.interaction_service.get_users_with_ratings(db_session)
        pool.discard(user_id)
        # Sort first so a seeded rng yields a reproducible sample.
        candidates = sorted(pool, key=str)
        picked = self.rng.sample(candidates, min(count, len(candidates)))
        return [
            RecommendationResult(
                user_id=candidate,
                score=self.random_base_score,
                match_type=MatchType.RANDOM,
                reason="random exploration",
                metadata={"random": True},
            )
            for candidate in picked
        ]
