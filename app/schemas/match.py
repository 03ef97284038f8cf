from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

from app.models.enums import MatchStatus, MatchType

class MatchProcessRequest(BaseModel):
    matched_user_id: UUID
    score: float  # clamped to [0, 1] on write
    match_type: MatchType = MatchType.HYBRID

class MatchStatusUpdate(BaseModel):
    status: MatchStatus
    notes: Optional[str] = Field(None, max_length=2000)

class MatchResponse(BaseModel):
    id: UUID
    user_id: UUID
    matched_user_id: UUID
    score: float
    match_type: MatchType
    status: MatchStatus
    created_at: datetime
    last_interaction_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}

class MatchPage(BaseModel):
    items: list[MatchResponse]
    total: int
    page: int
    page_size: int

class MatchStats(BaseModel):
    user_id: UUID
    total: int
    by_status: dict[MatchStatus, int]
    by_type: dict[MatchType, int]
    average_score: float
