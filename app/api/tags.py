"""
Tandem — Tag catalogue API

Browse, search and curate the shared interest tags.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user_id, get_tag_service
from app.database import get_db
from app.models.enums import TagCategory
from app.schemas.tag import TagCreate, TagResponse, TagUpdate
from app.services.tag_service import TagService


router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.get("/popular", response_model=list[TagResponse], summary="Most used tags")
async def get_popular_tags(
    count: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> list[TagResponse]:
    return await tag_service.get_popular_tags(db, count=count)


@router.get("/search", response_model=list[TagResponse], summary="Search tags")
async def search_tags(
    keyword: str = Query(..., min_length=1, max_length=50),
    count: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> list[TagResponse]:
    tags = await tag_service.search_tags(keyword, db, count=count)
    return [TagResponse.model_validate(t) for t in tags]


@router.get(
    "/category/{category}",
    response_model=list[TagResponse],
    summary="Active tags in a category",
)
async def get_tags_by_category(
    category: TagCategory,
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> list[TagResponse]:
    tags = await tag_service.get_tags_by_category(category, db)
    return [TagResponse.model_validate(t) for t in tags]


@router.get("/{tag_id}", response_model=TagResponse, summary="Get a tag")
async def get_tag(
    tag_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> TagResponse:
    tag = await tag_service.get_tag(tag_id, db)
    if tag is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return TagResponse.model_validate(tag)


@router.post(
    "",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a tag",
)
async def create_tag(
    body: TagCreate,
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> TagResponse:
    tag = await tag_service.create_tag(body.name, body.description, body.category, db)
    return TagResponse.model_validate(tag)


@router.put("/{tag_id}", response_model=TagResponse, summary="Update a tag")
async def update_tag(
    tag_id: uuid.UUID,
    body: TagUpdate,
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> TagResponse:
    tag = await tag_service.update_tag(
        tag_id,
        db,
        name=body.name,
        description=body.description,
        category=body.category,
    )
    if tag is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return TagResponse.model_validate(tag)


@router.delete(
    "/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a tag",
)
async def delete_tag(
    tag_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    tag_service: TagService = Depends(get_tag_service),
) -> Response:
    if not await tag_service.delete_tag(tag_id, db):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
