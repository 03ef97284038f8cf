"""
Tandem — User tag API

A user's interest tags and their weights.  Every route is scoped to the
caller's own user id.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_owner, get_current_user_id, get_tag_service
from app.database import get_db
from app.schemas.tag import UserTagAttach, UserTagResponse, UserTagWeightUpdate
from app.services.tag_service import TagService


router = APIRouter()


@router.get("/{user_id}/tags", response_model=list[UserTagResponse], summary="List user tags")
async def get_user_tags(
    user_id: uuid.UUID,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> list[UserTagResponse]:
    ensure_owner(current_user_id, user_id)
    return await tag_service.get_user_tags(user_id, db)


@router.post(
    "/{user_id}/tags",
    response_model=UserTagResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a tag",
)
async def attach_user_tag(
    user_id: uuid.UUID,
    body: UserTagAttach,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> UserTagResponse:
    ensure_owner(current_user_id, user_id)
    user_tag = await tag_service.attach_tag(user_id, body.tag_id, db, weight=body.weight)
    return UserTagResponse.from_model(user_tag)


@router.get(
    "/{user_id}/tags/{tag_id}",
    response_model=UserTagResponse,
    summary="Get one user tag",
)
async def get_user_tag(
    user_id: uuid.UUID,
    tag_id: uuid.UUID,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> UserTagResponse:
    ensure_owner(current_user_id, user_id)
    user_tag = await tag_service.get_user_tag(user_id, tag_id, db)
    if user_tag is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User tag not found")
    return UserTagResponse.from_model(user_tag)


@router.put(
    "/{user_id}/tags/{tag_id}",
    response_model=UserTagResponse,
    summary="Update a tag weight",
)
async def update_user_tag(
    user_id: uuid.UUID,
    tag_id: uuid.UUID,
    body: UserTagWeightUpdate,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> UserTagResponse:
    ensure_owner(current_user_id, user_id)
    user_tag = await tag_service.update_user_tag_weight(user_id, tag_id, body.weight, db)
    if user_tag is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User tag not found")
    return UserTagResponse.from_model(user_tag)


@router.delete(
    "/{user_id}/tags/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Detach a tag",
)
async def detach_user_tag(
    user_id: uuid.UUID,
    tag_id: uuid.UUID,
    current_user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> Response:
    ensure_owner(current_user_id, user_id)
    await tag_service.detach_tag(user_id, tag_id, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
