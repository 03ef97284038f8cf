from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

from app.models.enums import InteractionType

class InteractionCreate(BaseModel):
    target_user_id: UUID
    interaction_type: InteractionType
    rating: float = 0.0  # clamped to [0, 5] on write
    context: Optional[str] = Field(None, max_length=2000)

class InteractionResponse(BaseModel):
    id: UUID
    user_id: UUID
    target_user_id: UUID
    interaction_type: InteractionType
    rating: float
    created_at: datetime
    context: Optional[str] = None

    model_config = {"from_attributes": True}

class InteractionPage(BaseModel):
    items: list[InteractionResponse]
    total: int
    page: int
    page_size: int

class InteractionStats(BaseModel):
    user_id: UUID
    total: int
    by_type: dict[InteractionType, int]
    average_rating_given: float
    average_rating_received: float

class RatingCorrection(BaseModel):
    rating: float
