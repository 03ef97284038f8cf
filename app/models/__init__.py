"""
Tandem — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.enums import InteractionType, MatchStatus, MatchType, TagCategory
from app.models.interaction import UserInteraction
from app.models.match import UserMatch
from app.models.tag import Tag, UserTag

__all__ = [
    "Tag",
    "UserTag",
    "UserInteraction",
    "UserMatch",
    "TagCategory",
    "InteractionType",
    "MatchType",
    "MatchStatus",
]
