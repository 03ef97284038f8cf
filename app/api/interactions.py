"""
Tandem — Interaction API

Record interactions with other users and page through one's own history.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_owner, get_current_user_id, get_interaction_service
from app.database import get_db
from app.models.enums import InteractionType
from app.schemas.interaction import (
    InteractionCreate,
    InteractionPage,
    InteractionResponse,
    InteractionStats,
    RatingCorrection,
)
from app.services.errors import ValidationFailure
from app.services.interaction_service import InteractionService

router = APIRouter()


@router.post(
    "",
    response_model=InteractionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an interaction",
)
async def record_interaction(
    body: InteractionCreate,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> InteractionResponse:
    """Record an interaction from the caller towards ``target_user_id``."""
    if body.target_user_id == current_user_id:
        raise ValidationFailure("target_user_id", "Cannot interact with yourself")

    interaction = await interaction_service.record_interaction(
        current_user_id,
        body.target_user_id,
        body.interaction_type,
        db,
        rating=body.rating,
        context=body.context,
    )
    return InteractionResponse.model_validate(interaction)


@router.get(
    "/users/{user_id}",
    response_model=InteractionPage,
    summary="List a user's interactions",
)
async def list_interactions(
    user_id: uuid.UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    interaction_type: InteractionType | None = Query(None),
    target_user_id: uuid.UUID | None = Query(None),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> InteractionPage:
    ensure_owner(current_user_id, user_id)
    items, total = await interaction_service.list_interactions(
        user_id,
        db,
        page=page,
        page_size=page_size,
        interaction_type=interaction_type,
        target_user_id=target_user_id,
    )
    return InteractionPage(
        items=[InteractionResponse.model_validate(i) for i in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/users/{user_id}/stats",
    response_model=InteractionStats,
    summary="Interaction statistics",
)
async def get_interaction_stats(
    user_id: uuid.UUID,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> InteractionStats:
    ensure_owner(current_user_id, user_id)
    stats = await interaction_service.get_interaction_stats(user_id, db)
    return InteractionStats(**stats)


@router.put(
    "/{interaction_id}/rating",
    response_model=InteractionResponse,
    summary="Correct the rating of an interaction",
)
async def correct_rating(
    interaction_id: uuid.UUID,
    body: RatingCorrection,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> InteractionResponse:
    existing = await interaction_service.get_interaction(interaction_id, db)
    if existing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Interaction not found")
    ensure_owner(current_user_id, existing.user_id)

    interaction = await interaction_service.correct_rating(interaction_id, body.rating, db)
    return InteractionResponse.model_validate(interaction)
