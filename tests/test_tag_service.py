"""Tests for TagService — tag catalogue and user tag affinities."""
import uuid

import pytest
from sqlalchemy import func, select

from app.models.enums import TagCategory
from app.models.tag import UserTag
from app.services.errors import ValidationFailure


async def _count_relations(db_session, user_id, tag_id):
    stmt = (
        select(func.count())
        .select_from(UserTag)
        .where(UserTag.user_id == user_id, UserTag.tag_id == tag_id)
    )
    return (await db_session.execute(stmt)).scalar_one()


class TestTagCatalogue:
    """Create, rename, search and rank tags."""

    @pytest.mark.asyncio
    async def test_create_tag(self, tag_service, db_session):
        tag = await tag_service.create_tag("chess", "Over-the-board chess", TagCategory.GAMING, db_session)
        assert tag.id is not None
        assert tag.usage_count == 0
        assert tag.is_active is True

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, tag_service, db_session):
        """A second tag with the same name fails on field 'name'."""
        await tag_service.create_tag("chess", "", TagCategory.GAMING, db_session)
        with pytest.raises(ValidationFailure) as exc_info:
            await tag_service.create_tag("chess", "again", TagCategory.OTHER, db_session)
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_update_unknown_tag_returns_none(self, tag_service, db_session):
        assert await tag_service.update_tag(uuid.uuid4(), db_session, name="x") is None

    @pytest.mark.asyncio
    async def test_rename_onto_other_tag_rejected(self, tag_service, make_tag, db_session):
        await make_tag("hiking")
        climbing = await make_tag("climbing")
        with pytest.raises(ValidationFailure) as exc_info:
            await tag_service.update_tag(climbing.id, db_session, name="hiking")
        assert exc_info.value.field == "name"

    @pytest.mark.asyncio
    async def test_rename_to_own_name_allowed(self, tag_service, make_tag, db_session):
        climbing = await make_tag("climbing")
        updated = await tag_service.update_tag(
            climbing.id, db_session, name="climbing", description="bouldering too"
        )
        assert updated.description == "bouldering too"

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_and_active_only(
        self, tag_service, make_tag, db_session
    ):
        await make_tag("Jazz Guitar", TagCategory.MUSIC, usage_count=2)
        await make_tag("jazz piano", TagCategory.MUSIC, usage_count=5)
        await make_tag("jazz dance", TagCategory.MUSIC, is_active=False)
        found = await tag_service.search_tags("JAZZ", db_session)
        assert [t.name for t in found] == ["jazz piano", "Jazz Guitar"]

    @pytest.mark.asyncio
    async def test_search_matches_description(self, tag_service, make_tag, db_session):
        await make_tag("tennis", TagCategory.SPORTS)
        found = await tag_service.search_tags("tennis fans", db_session)
        assert [t.name for t in found] == ["tennis"]

    @pytest.mark.asyncio
    async def test_category_listing_orders_by_usage(self, tag_service, make_tag, db_session):
        await make_tag("yoga", TagCategory.SPORTS, usage_count=1)
        await make_tag("football", TagCategory.SPORTS, usage_count=9)
        await make_tag("sushi", TagCategory.FOOD, usage_count=20)
        tags = await tag_service.get_tags_by_category(TagCategory.SPORTS, db_session)
        assert [t.name for t in tags] == ["football", "yoga"]

    @pytest.mark.asyncio
    async def test_popular_tags_cached(self, tag_service, make_tag, db_session, cache):
        await make_tag("rare", usage_count=1)
        await make_tag("common", usage_count=50)
        first = await tag_service.get_popular_tags(db_session, count=2)
        assert [t.name for t in first] == ["common", "rare"]
        assert await cache.get_popular_tags() is not None

    @pytest.mark.asyncio
    async def test_short_catalogue_served_from_cache(
        self, tag_service, make_tag, db_session
    ):
        """Asking for more tags than exist still hits the cache on the next call."""
        await make_tag("rare", usage_count=1)
        await make_tag("common", usage_count=50)
        first = await tag_service.get_popular_tags(db_session, count=20)
        assert [t.name for t in first] == ["common", "rare"]

        await make_tag("viral", usage_count=500)

        second = await tag_service.get_popular_tags(db_session, count=20)
        assert [t.name for t in second] == ["common", "rare"]

    @pytest.mark.asyncio
    async def test_delete_unknown_tag_returns_false(self, tag_service, db_session):
        assert await tag_service.delete_tag(uuid.uuid4(), db_session) is False

    @pytest.mark.asyncio
    async def test_delete_unreferenced_tag(self, tag_service, make_tag, db_session, cache):
        tag = await make_tag("origami")
        await tag_service.get_popular_tags(db_session)

        assert await tag_service.delete_tag(tag.id, db_session) is True
        assert await tag_service.get_tag(tag.id, db_session) is None
        assert await cache.get_popular_tags() is None

    @pytest.mark.asyncio
    async def test_delete_held_tag_refused(
        self, tag_service, make_tag, db_session, cache, user_a
    ):
        tag = await make_tag("climbing", TagCategory.SPORTS)
        await tag_service.attach_tag(user_a, tag.id, db_session, weight=0.8)
        await tag_service.get_popular_tags(db_session)

        with pytest.raises(ValidationFailure) as exc_info:
            await tag_service.delete_tag(tag.id, db_session)

        assert exc_info.value.field == "tag_id"
        assert await tag_service.get_tag(tag.id, db_session) is not None
        assert await tag_service.get_user_tag(user_a, tag.id, db_session) is not None
        assert await cache.get_popular_tags() is not None

    @pytest.mark.asyncio
    async def test_delete_detached_tag_refused(
        self, tag_service, make_tag, db_session, user_a
    ):
        """A detached relation row still references the tag."""
        tag = await make_tag("pottery")
        await tag_service.attach_tag(user_a, tag.id, db_session)
        await tag_service.detach_tag(user_a, tag.id, db_session)
        assert tag.usage_count == 0

        with pytest.raises(ValidationFailure):
            await tag_service.delete_tag(tag.id, db_session)
        assert await _count_relations(db_session, user_a, tag.id) == 1


class TestUserTags:
    """Attach, detach and weight updates."""

    @pytest.mark.asyncio
    async def test_attach_unknown_tag_rejected(self, tag_service, db_session, user_a):
        with pytest.raises(ValidationFailure) as exc_info:
            await tag_service.attach_tag(user_a, uuid.uuid4(), db_session)
        assert exc_info.value.field == "tag_id"

    @pytest.mark.asyncio
    async def test_attach_twice_creates_one_row(self, tag_service, make_tag, db_session, user_a):
        """Second attach updates weight and leaves usage_count unchanged."""
        tag = await make_tag("cycling", TagCategory.SPORTS)

        await tag_service.attach_tag(user_a, tag.id, db_session, weight=0.4)
        assert tag.usage_count == 1

        again = await tag_service.attach_tag(user_a, tag.id, db_session, weight=0.9)
        assert again.weight == pytest.approx(0.9)
        assert tag.usage_count == 1
        assert await _count_relations(db_session, user_a, tag.id) == 1

    @pytest.mark.asyncio
    async def test_attach_clamps_weight(self, tag_service, make_tag, db_session, user_a):
        tag = await make_tag("rowing")
        user_tag = await tag_service.attach_tag(user_a, tag.id, db_session, weight=3.0)
        assert user_tag.weight == 1.0

    @pytest.mark.asyncio
    async def test_attach_stamps_last_used(self, tag_service, make_tag, db_session, user_a):
        tag = await make_tag("surfing")
        assert tag.last_used_at is None
        await tag_service.attach_tag(user_a, tag.id, db_session)
        assert tag.last_used_at is not None

    @pytest.mark.asyncio
    async def test_detach_deactivates_and_decrements(
        self, tag_service, make_tag, db_session, user_a
    ):
        tag = await make_tag("skiing")
        user_tag = await tag_service.attach_tag(user_a, tag.id, db_session)
        assert await tag_service.detach_tag(user_a, tag.id, db_session) is True
        assert user_tag.is_active is False
        assert tag.usage_count == 0

    @pytest.mark.asyncio
    async def test_detach_without_relation_is_noop(
        self, tag_service, make_tag, db_session, user_a
    ):
        tag = await make_tag("sailing", usage_count=4)
        assert await tag_service.detach_tag(user_a, tag.id, db_session) is False
        assert tag.usage_count == 4

    @pytest.mark.asyncio
    async def test_reattach_after_detach_counts_again(
        self, tag_service, make_tag, db_session, user_a
    ):
        tag = await make_tag("karaoke", TagCategory.MUSIC)
        await tag_service.attach_tag(user_a, tag.id, db_session)
        await tag_service.detach_tag(user_a, tag.id, db_session)
        user_tag = await tag_service.attach_tag(user_a, tag.id, db_session, weight=0.6)
        assert user_tag.is_active is True
        assert user_tag.weight == pytest.approx(0.6)
        assert tag.usage_count == 1
        assert await _count_relations(db_session, user_a, tag.id) == 1

    @pytest.mark.asyncio
    async def test_update_weight_missing_relation(self, tag_service, make_tag, db_session, user_a):
        tag = await make_tag("golf")
        assert await tag_service.update_user_tag_weight(user_a, tag.id, 0.5, db_session) is None

    @pytest.mark.asyncio
    async def test_update_weight_clamps(self, tag_service, make_tag, db_session, user_a):
        tag = await make_tag("darts")
        await tag_service.attach_tag(user_a, tag.id, db_session)
        user_tag = await tag_service.update_user_tag_weight(user_a, tag.id, -2.0, db_session)
        assert user_tag.weight == 0.0

    @pytest.mark.asyncio
    async def test_get_user_tags_cached_and_invalidated(
        self, tag_service, make_tag, db_session, cache, user_a
    ):
        """Affinity writes drop the cached tag list and recommendations."""
        tag = await make_tag("anime")
        await tag_service.attach_tag(user_a, tag.id, db_session, weight=0.7)

        listed = await tag_service.get_user_tags(user_a, db_session)
        assert [(t.tag_name, t.weight) for t in listed] == [("anime", pytest.approx(0.7))]
        assert await cache.get_user_tags(user_a) is not None

        await cache.set_recommendations(user_a, [])
        await tag_service.detach_tag(user_a, tag.id, db_session)
        assert await cache.get_user_tags(user_a) is None
        assert await cache.get_recommendations(user_a) is None
        assert await tag_service.get_user_tags(user_a, db_session) == []

    @pytest.mark.asyncio
    async def test_every_affinity_write_drops_recommendations(
        self, tag_service, make_tag, db_session, cache, user_a
    ):
        tag = await make_tag("jazz", TagCategory.MUSIC)
        writes = [
            lambda: tag_service.attach_tag(user_a, tag.id, db_session, weight=0.5),
            lambda: tag_service.attach_tag(user_a, tag.id, db_session, weight=0.9),
            lambda: tag_service.update_user_tag_weight(user_a, tag.id, 0.3, db_session),
            lambda: tag_service.detach_tag(user_a, tag.id, db_session),
            lambda: tag_service.attach_tag(user_a, tag.id, db_session, weight=0.6),
        ]

        for write in writes:
            await cache.set_recommendations(user_a, [])
            await write()
            assert await cache.get_recommendations(user_a) is None
