"""
Tandem — Location-based recommendations.

Candidates are drawn from the user's own recent interactions (last 30 days,
at most 100).  Each interaction scores by type and a candidate keeps the best
score it earned; only scores strictly above 0.3 survive.

Distance is used for eligibility only.  When the caller knows a candidate's
location, candidates outside ``max_distance_km`` are dropped and the distance
is reported in metadata; it never scales the score.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Mapping

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.models.enums import InteractionType, MatchType
from app.schemas.recommendation import RecommendationResult
from app.services.interaction_service import InteractionService

logger = structlog.get_logger("tandem.location_service")

EARTH_RADIUS_KM: float = 6371.0

INTERACTION_SCORES: dict[InteractionType, float] = {
    InteractionType.FOLLOW: 0.9,
    InteractionType.LIKE: 0.8,
    InteractionType.SEND_MESSAGE: 0.7,
    InteractionType.VIEW_PROFILE: 0.3,
}
DEFAULT_INTERACTION_SCORE: float = 0.5


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two points in degrees."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None

    def distance_to(self, other: "Location") -> float:
        return haversine_distance(
            self.latitude, self.longitude, other.latitude, other.longitude
        )

    def is_within_range(self, other: "Location", max_distance_km: float) -> bool:
        return self.distance_to(other) <= max_distance_km


def interaction_score(interaction_type: InteractionType) -> float:
    return INTERACTION_SCORES.get(interaction_type, DEFAULT_INTERACTION_SCORE)


class LocationService:
    """Proximity-flavoured recommendations from recent interaction history."""

    def __init__(self, interaction_service: InteractionService) -> None:
        self.interaction_service = interaction_service

        settings = get_settings()
        self.lookback_days: int = settings.LOCATION_LOOKBACK_DAYS
        self.max_interactions: int = settings.LOCATION_MAX_INTERACTIONS
        self.score_threshold: float = settings.LOCATION_SCORE_THRESHOLD
        self.default_max_distance_km: float = settings.DEFAULT_MAX_DISTANCE_KM

    async def location_recommendations(
        self,
        user_id: uuid.UUID,
        location: Location,
        db_session: AsyncSession,
        max_distance_km: float | None = None,
        count: int = 20,
        candidate_locations: Mapping[uuid.UUID, Location] | None = None,
    ) -> list[RecommendationResult]:
        """Score recent interaction targets of ``user_id`` near ``location``.

        Parameters
        ----------
        location:
            The querying user's position.
        max_distance_km:
            Eligibility radius; defaults to ``DEFAULT_MAX_DISTANCE_KM``.
        candidate_locations:
            Known positions of candidates.  Candidates absent from the
            mapping are kept and reported with ``distance_km = "N/A"``.
        """
        radius = max_distance_km if max_distance_km is not None else self.default_max_distance_km
        known = candidate_locations or {}
        log = logger.bind(user_id=str(user_id), radius_km=radius)

        since = datetime.now(timezone.utc) - timedelta(days=self.lookback_days)
        interactions = await self.interaction_service.get_recent_interactions(
            user_id, since, db_session, count=self.max_interactions
        )

        best: dict[uuid.UUID, float] = {}
        for interaction in interactions:
            target = interaction.target_user_id
            if target == user_id:
                continue
            score = interaction_score(interaction.interaction_type)
            if score > best.get(target, 0.0):
                best[target] = score

        results: list[RecommendationResult] = []
        dropped = 0
        for target, score in sorted(best.items(), key=lambda kv: (-kv[1], str(kv[0]))):
            if score <= self.score_threshold:
                continue

            distance: float | str = "N/A"
            if target in known:
                distance = location.distance_to(known[target])
                if distance > radius:
                    dropped += 1
                    continue
                distance = round(distance, 3)

            results.append(
                RecommendationResult(
                    user_id=target,
                    score=score,
                    match_type=MatchType.LOCATION_BASED,
                    reason="location proximity",
                    metadata={
                        "distance_km": distance,
                        "city": location.city or "Unknown",
                        "province": location.province or "Unknown",
                    },
                )
            )
            if len(results) >= count:
                break

        log.info(
            "location_based_done",
            interactions=len(interactions),
            out_of_range=dropped,
            returned=len(results),
        )
        return results
