"""
Tandem — Match API

Propose matches, move them through their lifecycle and inspect a user's
match history.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_owner, get_current_user_id, get_match_service
from app.database import get_db
from app.models.enums import MatchStatus, MatchType
from app.schemas.match import (
    MatchPage,
    MatchProcessRequest,
    MatchResponse,
    MatchStats,
    MatchStatusUpdate,
)
from app.services.match_service import MatchService

router = APIRouter()


@router.post(
    "",
    response_model=MatchResponse,
    status_code=status.HTTP_200_OK,
    summary="Create or rescore a match proposal",
)
async def process_match(
    body: MatchProcessRequest,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    match_service: MatchService = Depends(get_match_service),
) -> MatchResponse:
    """Upsert the (caller, matched_user_id) proposal.

    A new proposal starts as ``pending``; an existing one keeps its status
    and only takes the new score.
    """
    user_match = await match_service.process_match(
        current_user_id, body.matched_user_id, body.score, body.match_type, db
    )
    return MatchResponse.model_validate(user_match)


@router.get("/users/{user_id}", response_model=MatchPage, summary="List a user's matches")
async def list_matches(
    user_id: uuid.UUID,
    match_status: MatchStatus | None = Query(None, alias="status"),
    match_type: MatchType | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    match_service: MatchService = Depends(get_match_service),
) -> MatchPage:
    ensure_owner(current_user_id, user_id)
    items, total = await match_service.get_user_matches(
        user_id,
        db,
        status=match_status,
        match_type=match_type,
        page=page,
        page_size=page_size,
    )
    return MatchPage(items=items, total=total, page=page, page_size=page_size)


@router.get(
    "/users/{user_id}/pending",
    response_model=list[MatchResponse],
    summary="Pending proposals, best first",
)
async def list_pending_matches(
    user_id: uuid.UUID,
    count: int = Query(20, ge=1, le=100),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    match_service: MatchService = Depends(get_match_service),
) -> list[MatchResponse]:
    ensure_owner(current_user_id, user_id)
    matches = await match_service.get_pending_matches(user_id, db, count=count)
    return [MatchResponse.model_validate(m) for m in matches]


@router.get("/users/{user_id}/stats", response_model=MatchStats, summary="Match statistics")
async def get_match_stats(
    user_id: uuid.UUID,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    match_service: MatchService = Depends(get_match_service),
) -> MatchStats:
    ensure_owner(current_user_id, user_id)
    return MatchStats(**await match_service.get_match_stats(user_id, db))


@router.get(
    "/users/{user_id}/high-score",
    response_model=list[MatchResponse],
    summary="Highest-scoring matches",
)
async def list_high_score_matches(
    user_id: uuid.UUID,
    min_score: float = Query(0.7, ge=0.0, le=1.0),
    count: int = Query(10, ge=1, le=100),
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    match_service: MatchService = Depends(get_match_service),
) -> list[MatchResponse]:
    ensure_owner(current_user_id, user_id)
    matches = await match_service.get_high_score_matches(
        user_id, db, min_score=min_score, count=count
    )
    return [MatchResponse.model_validate(m) for m in matches]


@router.put(
    "/{match_id}/status",
    response_model=MatchResponse,
    summary="Change a match's status",
)
async def update_match_status(
    match_id: uuid.UUID,
    body: MatchStatusUpdate,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    match_service: MatchService = Depends(get_match_service),
) -> MatchResponse:
    user_match = await match_service.update_status_by_id(
        match_id, current_user_id, body.status, db, notes=body.notes
    )
    return MatchResponse.model_validate(user_match)
