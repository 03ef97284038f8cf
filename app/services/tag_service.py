"""
Tandem — Tag catalogue and per-user tag affinities.

Tags are shared interest labels; a ``UserTag`` records how strongly one user
holds a tag (weight in [0, 1]).  The tag's ``usage_count`` tracks how many
users currently hold it:

  * first attach (or re-attach after a detach) → +1
  * repeat attach on an active relation      → weight update only
  * detach                                    → relation deactivated, -1

Every affinity write drops the user's cached tag list and recommendations;
catalogue edits drop the cached popular-tags list.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import TagCategory
from app.models.tag import Tag, UserTag
from app.repositories.tags import TagRepository
from app.repositories.user_tags import UserTagRepository
from app.schemas.tag import TagResponse, UserTagResponse
from app.services.cache_service import RecommendationCache
from app.services.errors import ValidationFailure

logger = structlog.get_logger("tandem.tag_service")


class TagService:
    """Tag catalogue (TagCatalog) and user affinity store (UserAffinityStore)."""

    def __init__(self, cache: RecommendationCache) -> None:
        self.cache = cache

    # ── Catalogue ───────────────────────────────────────────────────

    async def create_tag(
        self,
        name: str,
        description: str,
        category: TagCategory,
        db_session: AsyncSession,
    ) -> Tag:
        """Create a tag.  Duplicate names are rejected on field ``name``."""
        tags = TagRepository(db_session)
        if await tags.exists_by_name(name):
            raise ValidationFailure("name", f"Tag name {name!r} already exists")

        tag = await tags.add(Tag(name=name, description=description or "", category=category))
        await self.cache.invalidate_popular_tags()
        logger.info("tag_created", tag_id=str(tag.id), name=name, category=category.value)
        return tag

    async def update_tag(
        self,
        tag_id: uuid.UUID,
        db_session: AsyncSession,
        name: str | None = None,
        description: str | None = None,
        category: TagCategory | None = None,
    ) -> Tag | None:
        """Patch a tag in place.  Returns ``None`` for an unknown id.

        A rename onto a name held by a *different* tag is rejected on field
        ``name``; renaming a tag to its own name is allowed.
        """
        tags = TagRepository(db_session)
        tag = await tags.get_by_id(tag_id)
        if tag is None:
            return None

        if name is not None and name != tag.name:
            clash = await tags.get_by_name(name)
            if clash is not None and clash.id != tag.id:
                raise ValidationFailure("name", f"Tag name {name!r} already exists")
            tag.name = name
        if description is not None:
            tag.description = description
        if category is not None:
            tag.category = category

        await tags.update(tag)
        await self.cache.invalidate_popular_tags()
        logger.info("tag_updated", tag_id=str(tag_id))
        return tag

    async def delete_tag(self, tag_id: uuid.UUID, db_session: AsyncSession) -> bool:
        """Hard-delete an unreferenced tag.  Returns ``False`` for an unknown id.

        A tag still held by anyone (``usage_count > 0``) or still named by any
        relation row, active or detached, is rejected on field ``tag_id``.
        """
        tags = TagRepository(db_session)
        tag = await tags.get_by_id(tag_id)
        if tag is None:
            return False
        if tag.usage_count > 0 or await UserTagRepository(db_session).exists_by_tag(tag_id):
            logger.warning("tag_delete_refused", tag_id=str(tag_id), usage_count=tag.usage_count)
            raise ValidationFailure("tag_id", f"Tag {tag_id} is still referenced by users")

        await tags.delete(tag_id)
        await self.cache.invalidate_popular_tags()
        logger.info("tag_deleted", tag_id=str(tag_id))
        return True

    async def get_tag(self, tag_id: uuid.UUID, db_session: AsyncSession) -> Tag | None:
        return await TagRepository(db_session).get_by_id(tag_id)

    async def get_tag_by_name(self, name: str, db_session: AsyncSession) -> Tag | None:
        return await TagRepository(db_session).get_by_name(name)

    async def get_tags_by_category(
        self, category: TagCategory, db_session: AsyncSession
    ) -> list[Tag]:
        return await TagRepository(db_session).get_by_category(category)

    async def search_tags(
        self, keyword: str, db_session: AsyncSession, count: int = 10
    ) -> list[Tag]:
        if not keyword.strip():
            return []
        return await TagRepository(db_session).search(keyword, count)

    async def get_popular_tags(
        self, db_session: AsyncSession, count: int = 20
    ) -> list[TagResponse]:
        """Most-used active tags, memoized for ``POPULAR_TAGS_CACHE_TTL_SECONDS``.

        A miss caches the top ``POPULAR_TAGS_CACHE_SIZE`` tags (or ``count``,
        if larger) and every request up to that size is served from its
        prefix, including when the catalogue holds fewer tags than asked for.
        """
        size = self.cache.popular_tags_size
        cached = await self.cache.get_popular_tags()
        if cached is not None and (count <= size or len(cached) >= count):
            logger.debug("popular_tags_cache_hit", count=count)
            return cached[:count]

        tags = await TagRepository(db_session).get_popular(max(count, size))
        result = [TagResponse.model_validate(t) for t in tags]
        await self.cache.set_popular_tags(result)
        return result[:count]

    # ── User affinities ─────────────────────────────────────────────

    async def attach_tag(
        self,
        user_id: uuid.UUID,
        tag_id: uuid.UUID,
        db_session: AsyncSession,
        weight: float = 1.0,
    ) -> UserTag:
        """Attach ``tag_id`` to ``user_id`` with ``weight`` (clamped to [0, 1]).

        Raises
        ------
        ValidationFailure
            If the tag does not exist (field ``tag_id``).
        """
        log = logger.bind(user_id=str(user_id), tag_id=str(tag_id))

        tag = await TagRepository(db_session).get_by_id(tag_id)
        if tag is None:
            raise ValidationFailure("tag_id", f"Tag {tag_id} does not exist")

        user_tags = UserTagRepository(db_session)
        user_tag = await user_tags.get_by_user_and_tag(user_id, tag_id)

        if user_tag is not None and user_tag.is_active:
            user_tag.update_weight(weight)
            await user_tags.update(user_tag)
            log.info("user_tag_weight_updated", weight=user_tag.weight)
        elif user_tag is not None:
            user_tag.activate()
            user_tag.update_weight(weight)
            tag.increment_usage()
            await user_tags.update(user_tag)
            log.info("user_tag_reactivated", weight=user_tag.weight)
        else:
            user_tag = await user_tags.add(
                UserTag(user_id=user_id, tag_id=tag_id, weight=weight, tag=tag)
            )
            tag.increment_usage()
            await db_session.flush()
            log.info("user_tag_attached", weight=user_tag.weight)

        await self._invalidate_user(user_id)
        return user_tag

    async def detach_tag(
        self, user_id: uuid.UUID, tag_id: uuid.UUID, db_session: AsyncSession
    ) -> bool:
        """Deactivate the relation.  Returns ``False`` when nothing was active."""
        user_tags = UserTagRepository(db_session)
        user_tag = await user_tags.get_by_user_and_tag(user_id, tag_id)
        if user_tag is None or not user_tag.is_active:
            return False

        user_tag.deactivate()
        tag = await TagRepository(db_session).get_by_id(tag_id)
        if tag is not None:
            tag.decrement_usage()
        await user_tags.update(user_tag)

        await self._invalidate_user(user_id)
        logger.info("user_tag_detached", user_id=str(user_id), tag_id=str(tag_id))
        return True

    async def update_user_tag_weight(
        self,
        user_id: uuid.UUID,
        tag_id: uuid.UUID,
        weight: float,
        db_session: AsyncSession,
    ) -> UserTag | None:
        user_tags = UserTagRepository(db_session)
        user_tag = await user_tags.get_by_user_and_tag(user_id, tag_id)
        if user_tag is None:
            return None

        user_tag.update_weight(weight)
        await user_tags.update(user_tag)
        await self._invalidate_user(user_id)
        return user_tag

    async def get_user_tag(
        self, user_id: uuid.UUID, tag_id: uuid.UUID, db_session: AsyncSession
    ) -> UserTag | None:
        user_tag = await UserTagRepository(db_session).get_by_user_and_tag(user_id, tag_id)
        if user_tag is None or not user_tag.is_active:
            return None
        return user_tag

    async def get_user_tags(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        ttl: int | None = None,
    ) -> list[UserTagResponse]:
        """Active tag relations of ``user_id``, cached for ``ttl`` seconds."""
        cached = await self.cache.get_user_tags(user_id)
        if cached is not None:
            return cached

        user_tags = await UserTagRepository(db_session).get_active_by_user(user_id)
        result = [UserTagResponse.from_model(ut) for ut in user_tags]
        await self.cache.set_user_tags(user_id, result, ttl_seconds=ttl)
        return result

    async def _invalidate_user(self, user_id: uuid.UUID) -> None:
        await self.cache.invalidate_user_tags(user_id)
        await self.cache.invalidate_recommendations(user_id)
