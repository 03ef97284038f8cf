"""
Tandem — Recommendation API

Hybrid recommendations (cached) plus direct access to each individual
strategy for debugging and explainability.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    ensure_owner,
    get_current_user_id,
    get_location_service,
    get_recommendation_service,
    get_similarity_service,
)
from app.database import get_db
from app.schemas.recommendation import RecommendationResult
from app.services.location_service import Location, LocationService
from app.services.recommendation_service import RecommendationService
from app.services.similarity_service import SimilarityService

logger = structlog.get_logger("tandem.api.recommendations")

router = APIRouter()


def _optional_location(latitude: float | None, longitude: float | None) -> Location | None:
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="latitude and longitude must be supplied together",
        )
    return Location(latitude=latitude, longitude=longitude)


@router.get(
    "/{user_id}",
    response_model=list[RecommendationResult],
    summary="Hybrid recommendations",
)
async def get_recommendations(
    user_id: uuid.UUID,
    count: int = Query(20, ge=1, le=100),
    latitude: float | None = Query(None, ge=-90.0, le=90.0),
    longitude: float | None = Query(None, ge=-180.0, le=180.0),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    recommendation_service: RecommendationService = Depends(get_recommendation_service),
) -> list[RecommendationResult]:
    """Ranked candidates for ``user_id``.

    Served from cache when a fresh list exists; otherwise computed by the
    hybrid aggregator and cached for ``RECOMMENDATIONS_CACHE_TTL_SECONDS``.
    """
    ensure_owner(current_user_id, user_id)
    location = _optional_location(latitude, longitude)
    results = await recommendation_service.get_user_recommendations(
        user_id, db, location=location, count=count
    )
    logger.info("recommendations_served", user_id=str(user_id), returned=len(results))
    return results


@router.get(
    "/{user_id}/tag-based",
    response_model=list[RecommendationResult],
    summary="Tag-based recommendations",
)
async def get_tag_based_recommendations(
    user_id: uuid.UUID,
    count: int = Query(20, ge=1, le=100),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    similarity_service: SimilarityService = Depends(get_similarity_service),
) -> list[RecommendationResult]:
    ensure_owner(current_user_id, user_id)
    return await similarity_service.tag_based_recommendations(user_id, db, count=count)


@router.get(
    "/{user_id}/collaborative",
    response_model=list[RecommendationResult],
    summary="Collaborative-filtering recommendations",
)
async def get_collaborative_recommendations(
    user_id: uuid.UUID,
    count: int = Query(20, ge=1, le=100),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    similarity_service: SimilarityService = Depends(get_similarity_service),
) -> list[RecommendationResult]:
    ensure_owner(current_user_id, user_id)
    return await similarity_service.collaborative_recommendations(user_id, db, count=count)


@router.get(
    "/{user_id}/location",
    response_model=list[RecommendationResult],
    summary="Location-based recommendations",
)
async def get_location_recommendations(
    user_id: uuid.UUID,
    latitude: float = Query(..., ge=-90.0, le=90.0),
    longitude: float = Query(..., ge=-180.0, le=180.0),
    max_distance_km: float | None = Query(None, gt=0.0),
    count: int = Query(20, ge=1, le=100),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    location_service: LocationService = Depends(get_location_service),
) -> list[RecommendationResult]:
    ensure_owner(current_user_id, user_id)
    return await location_service.location_recommendations(
        user_id,
        Location(latitude=latitude, longitude=longitude),
        db,
        max_distance_km=max_distance_km,
        count=count,
    )
