from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

from app.models.enums import TagCategory

class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: str = Field("", max_length=500)
    category: TagCategory = TagCategory.OTHER

class TagUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[TagCategory] = None

class TagResponse(BaseModel):
    id: UUID
    name: str
    description: str
    category: TagCategory
    usage_count: int
    created_at: datetime
    last_used_at: Optional[datetime] = None
    is_active: bool

    model_config = {"from_attributes": True}

class UserTagAttach(BaseModel):
    tag_id: UUID
    weight: float = Field(1.0, ge=0.0, le=1.0)

class UserTagWeightUpdate(BaseModel):
    weight: float = Field(ge=0.0, le=1.0)

class UserTagResponse(BaseModel):
    id: UUID
    user_id: UUID
    tag_id: UUID
    tag_name: Optional[str] = None
    tag_category: Optional[TagCategory] = None
    weight: float
    is_active: bool
    created_at: datetime
    last_updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, user_tag) -> "UserTagResponse":
        tag = user_tag.tag
        return cls(
            id=user_tag.id,
            user_id=user_tag.user_id,
            tag_id=user_tag.tag_id,
            tag_name=tag.name if tag is not None else None,
            tag_category=tag.category if tag is not None else None,
            weight=user_tag.weight,
            is_active=user_tag.is_active,
            created_at=user_tag.created_at,
            last_updated_at=user_tag.last_updated_at,
        )
