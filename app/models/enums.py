"""
Tandem — Enumerations shared by models, schemas and services.

Values are stored in the database as their lowercase string form.
"""

import enum

from sqlalchemy import Enum as SAEnum


class TagCategory(str, enum.Enum):
    SPORTS = "sports"
    GAMING = "gaming"
    LEARNING = "learning"
    FOOD = "food"
    TRAVEL = "travel"
    MUSIC = "music"
    TECHNOLOGY = "technology"
    FASHION = "fashion"
    READING = "reading"
    OTHER = "other"


class InteractionType(str, enum.Enum):
    VIEW_PROFILE = "view_profile"
    SEND_MESSAGE = "send_message"
    LIKE = "like"
    FOLLOW = "follow"
    COMMENT = "comment"
    SHARE = "share"
    REPORT = "report"
    JOIN_GROUP = "join_group"
    JOIN_ACTIVITY = "join_activity"


class MatchType(str, enum.Enum):
    TAG_BASED = "tag_based"
    COLLABORATIVE_FILTERING = "collaborative_filtering"
    LOCATION_BASED = "location_based"
    ACTIVITY_BASED = "activity_based"
    HYBRID = "hybrid"
    RANDOM = "random"


class MatchStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not MatchStatus.PENDING


def enum_column(enum_cls: type[enum.Enum]) -> SAEnum:
    """Non-native enum column that persists member values, not names."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
