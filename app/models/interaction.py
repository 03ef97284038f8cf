"""
Tandem — UserInteraction model (append-only interaction ledger).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Index, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.database import Base
from app.models.enums import InteractionType, enum_column
from app.utils.numeric import clamp

MIN_RATING = 0.0
MAX_RATING = 5.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserInteraction(Base):
    __tablename__ = "user_interactions"
    __table_args__ = (
        Index("ix_interactions_user_created", "user_id", "created_at"),
        Index("ix_interactions_user_target", "user_id", "target_user_id"),
        Index("ix_interactions_rated_users", "user_id", "rating"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    target_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    interaction_type: Mapped[InteractionType] = mapped_column(
        enum_column(InteractionType), nullable=False
    )
    rating: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, comment="Explicit or implicit rating in [0, 5]"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    context: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Free-text context supplied by the caller"
    )

    @validates("rating")
    def _clamp_rating(self, key: str, value: float) -> float:
        return clamp(value, MIN_RATING, MAX_RATING)

    def __repr__(self) -> str:
        return (
            f"<UserInteraction {self.user_id} -> {self.target_user_id} "
            f"type={self.interaction_type} rating={self.rating}>"
        )
