"""
Tandem — Shared API dependencies.

Caller identity arrives in the ``X-User-Id`` header, set by the upstream
gateway after it has authenticated the request.  Services are cheap to build
and are constructed per request around the cache that the lifespan stored on
``app.state``.
"""

from __future__ import annotations

import uuid

from fastapi import Depends, Header, HTTPException, Request, status

from app.services.cache_service import RecommendationCache
from app.services.errors import OwnershipViolation
from app.services.interaction_service import InteractionService
from app.services.location_service import LocationService
from app.services.match_service import MatchService
from app.services.recommendation_service import RecommendationService
from app.services.similarity_service import SimilarityService
from app.services.tag_service import TagService


async def get_current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> uuid.UUID:
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    try:
        return uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header",
        )


def ensure_owner(current_user_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """Reject access to another user's resources."""
    if current_user_id != user_id:
        raise OwnershipViolation()


def get_recommendation_cache(request: Request) -> RecommendationCache:
    cache = getattr(request.app.state, "recommendation_cache", None)
    if cache is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache not initialised",
        )
    return cache


# ── Service factories ─────────────────────────────────────────────────────────

def get_tag_service(
    cache: RecommendationCache = Depends(get_recommendation_cache),
) -> TagService:
    return TagService(cache)


def get_interaction_service(
    cache: RecommendationCache = Depends(get_recommendation_cache),
) -> InteractionService:
    return InteractionService(cache)


def get_match_service(
    cache: RecommendationCache = Depends(get_recommendation_cache),
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> MatchService:
    return MatchService(cache, interaction_service)


def get_similarity_service(
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> SimilarityService:
    return SimilarityService(interaction_service)


def get_location_service(
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> LocationService:
    return LocationService(interaction_service)


def get_recommendation_service(
    cache: RecommendationCache = Depends(get_recommendation_cache),
    interaction_service: InteractionService = Depends(get_interaction_service),
    similarity_service: SimilarityService = Depends(get_similarity_service),
    location_service: LocationService = Depends(get_location_service),
) -> RecommendationService:
    return RecommendationService(
        cache, interaction_service, similarity_service, location_service
    )
