"""Unit tests for the cache backends and RecommendationCache helpers."""
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.config import Settings
from app.models.enums import MatchStatus, MatchType, TagCategory
from app.schemas.match import MatchResponse
from app.schemas.recommendation import RecommendationResult
from app.schemas.tag import TagResponse
from app.services.cache_service import (
    MemoryCacheBackend,
    RedisCacheBackend,
    build_cache_backend,
)


def _rec(score=0.5, user_id=None):
    return RecommendationResult(
        user_id=user_id or uuid.uuid4(),
        score=score,
        match_type=MatchType.HYBRID,
        reason="hybrid recommendation algorithm",
        metadata={"contributions": {"tag_based": score}},
    )


class TestMemoryCacheBackend:
    """In-process backend with expiry timestamps."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, memory_backend):
        """A stored value is returned until it expires."""
        await memory_backend.set("k", "v", ttl_seconds=10)
        assert await memory_backend.get("k") == "v"

    @pytest.mark.asyncio
    async def test_expired_entry_is_a_miss(self, memory_backend, clock):
        """Reads at or after the expiry instant return None and drop the entry."""
        await memory_backend.set("k", "v", ttl_seconds=10)
        clock.advance(10)
        assert await memory_backend.get("k") is None
        assert len(memory_backend) == 0

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self, memory_backend):
        """Deleting an absent key does not raise."""
        await memory_backend.delete("missing")
        assert await memory_backend.get("missing") is None

    @pytest.mark.asyncio
    async def test_write_sweeps_expired_entries(self, memory_backend, clock):
        """Keys that are never read again are still dropped once expired."""
        await memory_backend.set("once", "v", ttl_seconds=5)
        await memory_backend.set("long", "v", ttl_seconds=60)
        clock.advance(5)

        await memory_backend.set("fresh", "v", ttl_seconds=10)

        assert len(memory_backend) == 2
        assert await memory_backend.get("long") == "v"


class TestRedisCacheBackend:
    """Redis backend delegates to the redis.asyncio client."""

    @pytest.mark.asyncio
    async def test_set_passes_ttl_as_ex(self):
        client = MagicMock()
        client.set = AsyncMock()
        backend = RedisCacheBackend(client)
        await backend.set("k", "v", ttl_seconds=300)
        client.set.assert_awaited_once_with("k", "v", ex=300)

    @pytest.mark.asyncio
    async def test_get_and_delete_delegate(self):
        client = MagicMock()
        client.get = AsyncMock(return_value="cached")
        client.delete = AsyncMock()
        backend = RedisCacheBackend(client)
        assert await backend.get("k") == "cached"
        await backend.delete("k")
        client.delete.assert_awaited_once_with("k")


class TestBuildCacheBackend:
    """Backend is selected from configuration."""

    def test_memory_backend_selected(self):
        settings = Settings(_env_file=None, CACHE_BACKEND="memory")
        assert isinstance(build_cache_backend(settings), MemoryCacheBackend)

    def test_redis_backend_selected(self):
        settings = Settings(_env_file=None, CACHE_BACKEND="redis")
        assert isinstance(build_cache_backend(settings), RedisCacheBackend)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, CACHE_BACKEND="memcached")


class TestRecommendationCache:
    """Typed helpers, TTLs, and invalidation."""

    @pytest.mark.asyncio
    async def test_recommendations_roundtrip(self, cache, user_a):
        results = [_rec(0.9), _rec(0.4)]
        await cache.set_recommendations(user_a, results)
        cached = await cache.get_recommendations(user_a)
        assert [r.user_id for r in cached] == [r.user_id for r in results]
        assert cached[0].metadata == {"contributions": {"tag_based": 0.9}}

    @pytest.mark.asyncio
    async def test_recommendations_expire_after_five_minutes(self, cache, clock, user_a):
        await cache.set_recommendations(user_a, [_rec()])
        clock.advance(299)
        assert await cache.get_recommendations(user_a) is not None
        clock.advance(1)
        assert await cache.get_recommendations(user_a) is None

    @pytest.mark.asyncio
    async def test_popular_tags_ttl_is_ten_minutes(self, cache, clock):
        tag = TagResponse(
            id=uuid.uuid4(),
            name="running",
            description="",
            category=TagCategory.SPORTS,
            usage_count=3,
            created_at=datetime.now(timezone.utc),
            is_active=True,
        )
        await cache.set_popular_tags([tag])
        clock.advance(599)
        assert (await cache.get_popular_tags())[0].name == "running"
        clock.advance(1)
        assert await cache.get_popular_tags() is None

    @pytest.mark.asyncio
    async def test_user_tags_respects_caller_ttl(self, cache, clock, user_a):
        await cache.set_user_tags(user_a, [], ttl_seconds=60)
        clock.advance(59)
        assert await cache.get_user_tags(user_a) == []
        clock.advance(1)
        assert await cache.get_user_tags(user_a) is None

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_deleted_and_reported_as_miss(
        self, cache, memory_backend, user_a
    ):
        """An undecodable value never raises; it is dropped."""
        key = cache.recommendations_key(user_a)
        await memory_backend.set(key, '[{"user_id": "not-a-uuid"}]', ttl_seconds=300)
        assert await cache.get_recommendations(user_a) is None
        assert await memory_backend.get(key) is None

    @pytest.mark.asyncio
    async def test_clear_user_drops_every_per_user_key(self, cache, user_a, user_b):
        match = MatchResponse(
            id=uuid.uuid4(),
            user_id=user_a,
            matched_user_id=user_b,
            score=0.8,
            match_type=MatchType.HYBRID,
            status=MatchStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )
        await cache.set_recommendations(user_a, [_rec()])
        await cache.set_user_tags(user_a, [])
        await cache.set_user_matches(user_a, [match])
        await cache.set_recommendations(user_b, [_rec()])

        await cache.clear_user(user_a)

        assert await cache.get_recommendations(user_a) is None
        assert await cache.get_user_tags(user_a) is None
        assert await cache.get_user_matches(user_a) is None
        assert await cache.get_recommendations(user_b) is not None

    def test_result_score_is_clamped(self):
        """RecommendationResult clamps scores into [0, 1]."""
        assert _rec(1.7).score == 1.0
        assert _rec(-0.2).score == 0.0
