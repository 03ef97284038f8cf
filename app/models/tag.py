"""
Tandem — Tag and UserTag models.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.database import Base
from app.models.enums import TagCategory, enum_column
from app.utils.numeric import clamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tag(Base):
    __tablename__ = "tags"
    __table_args__ = (
        Index("ix_tags_popularity", "usage_count", "last_used_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    description: Mapped[str] = mapped_column(
        String(500), nullable=False, default="", server_default=""
    )
    category: Mapped[TagCategory] = mapped_column(
        enum_column(TagCategory), index=True, nullable=False
    )
    usage_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )

    def increment_usage(self) -> None:
        self.usage_count = (self.usage_count or 0) + 1
        self.last_used_at = _utcnow()

    def decrement_usage(self) -> None:
        # Never below zero.
        if self.usage_count and self.usage_count > 0:
            self.usage_count -= 1

    def __repr__(self) -> str:
        return f"<Tag {self.name!r} usage={self.usage_count}>"


class UserTag(Base):
    __tablename__ = "user_tags"
    __table_args__ = (
        UniqueConstraint("user_id", "tag_id", name="uq_user_tag_pair"),
        Index("ix_user_tags_tag_active", "tag_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    # Users live in the account service; no foreign key across that boundary.
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )
    weight: Mapped[float] = mapped_column(
        Float, nullable=False, default=1.0, comment="Interest strength in [0, 1]"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    tag: Mapped["Tag"] = relationship("Tag", lazy="selectin")

    @validates("weight")
    def _clamp_weight(self, key: str, value: float) -> float:
        return clamp(value, 0.0, 1.0)

    def update_weight(self, weight: float) -> None:
        self.weight = weight
        self.last_updated_at = _utcnow()

    def activate(self) -> None:
        self.is_active = True
        self.last_updated_at = _utcnow()

    def deactivate(self) -> None:
        self.is_active = False
        self.last_updated_at = _utcnow()

    def __repr__(self) -> str:
        return f"<UserTag {self.user_id} -> {self.tag_id} w={self.weight:.2f}>"
