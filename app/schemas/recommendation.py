from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from typing import Any, Optional

from app.models.enums import MatchType
from app.utils.numeric import clamp

class RecommendationResult(BaseModel):
    user_id: UUID
    score: float
    match_type: MatchType
    reason: str
    metadata: dict[str, Any] = {}

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, v: float) -> float:
        return clamp(v, 0.0, 1.0)

class CachedRecommendations(BaseModel):
    """A memoized hybrid list and the request that produced it."""
    results: list[RecommendationResult]
    requested: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def serves(self, count: int, latitude: Optional[float], longitude: Optional[float]) -> bool:
        return (
            self.requested >= count
            and self.latitude == latitude
            and self.longitude == longitude
        )

class LocationQuery(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
