"""
Tandem — UserMatch model.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Index, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.database import Base
from app.models.enums import MatchStatus, MatchType, enum_column
from app.utils.numeric import clamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserMatch(Base):
    __tablename__ = "user_matches"
    __table_args__ = (
        UniqueConstraint("user_id", "matched_user_id", name="uq_match_pair"),
        Index("ix_matches_user_status", "user_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    matched_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    score: Mapped[float] = mapped_column(
        Float, nullable=False, comment="Match score in [0, 1]"
    )
    match_type: Mapped[MatchType] = mapped_column(
        enum_column(MatchType), nullable=False
    )
    status: Mapped[MatchStatus] = mapped_column(
        enum_column(MatchStatus),
        nullable=False,
        default=MatchStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    last_interaction_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @validates("score")
    def _clamp_score(self, key: str, value: float) -> float:
        return clamp(value, 0.0, 1.0)

    def apply_status(self, status: MatchStatus) -> None:
        self.status = status
        if status in (MatchStatus.ACCEPTED, MatchStatus.REJECTED):
            self.last_interaction_at = _utcnow()

    def __repr__(self) -> str:
        return (
            f"<UserMatch {self.user_id} -> {self.matched_user_id} "
            f"score={self.score:.3f} status={self.status}>"
        )
