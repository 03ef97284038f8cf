"""
Tandem — Recommendation cache.

Two interchangeable key/value backends sit behind the ``CacheBackend``
protocol:

  * ``RedisCacheBackend``  — shared cache for multi-worker deployments
  * ``MemoryCacheBackend`` — in-process dict with expiry timestamps, used in
    development and in the test suite

``build_cache_backend`` picks one from ``CACHE_BACKEND`` at composition time.
``RecommendationCache`` layers typed helpers on top: values are stored as
JSON produced by pydantic, and a value that no longer deserializes is deleted
and treated as a miss.

Key layout:
  popular_tags               list[TagResponse]             600 s
  recommendations:{user}     CachedRecommendations         300 s
  user_tags:{user}           list[UserTagResponse]         caller TTL
  user_matches:{user}        list[MatchResponse]           300 s
"""

from __future__ import annotations

import time
import uuid
from typing import Protocol, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from app.config import Settings
from app.schemas.match import MatchResponse
from app.schemas.recommendation import CachedRecommendations, RecommendationResult
from app.schemas.tag import TagResponse, UserTagResponse

logger = structlog.get_logger("tandem.cache_service")

T = TypeVar("T")

POPULAR_TAGS_KEY = "popular_tags"
RECOMMENDATIONS_PREFIX = "recommendations:"
USER_TAGS_PREFIX = "user_tags:"
USER_MATCHES_PREFIX = "user_matches:"

_TAGS_ADAPTER = TypeAdapter(list[TagResponse])
_USER_TAGS_ADAPTER = TypeAdapter(list[UserTagResponse])
_RECOMMENDATIONS_ADAPTER = TypeAdapter(CachedRecommendations)
_MATCHES_ADAPTER = TypeAdapter(list[MatchResponse])


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class CacheBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class RedisCacheBackend:
    """Backend over a ``redis.asyncio`` client created with ``decode_responses``."""

    def __init__(self, client) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheBackend":
        import redis.asyncio as aioredis

        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("redis_closed")


class MemoryCacheBackend:
    """Process-local backend.

    Expired entries are dropped on read; every write also sweeps all expired
    entries, including keys that are never read again.
    """

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
        for stale in expired:
            del self._entries[stale]
        self._entries[key] = (value, now + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def build_cache_backend(settings: Settings) -> RedisCacheBackend | MemoryCacheBackend:
    """Instantiate the backend named by ``settings.CACHE_BACKEND``."""
    if settings.CACHE_BACKEND == "memory":
        logger.info("cache_backend_selected", backend="memory")
        return MemoryCacheBackend()
    logger.info("cache_backend_selected", backend="redis", url=settings.REDIS_URL)
    return RedisCacheBackend.from_url(settings.REDIS_URL)


# ---------------------------------------------------------------------------
# Typed cache
# ---------------------------------------------------------------------------

class RecommendationCache:
    """Typed read/write/invalidate helpers over a ``CacheBackend``."""

    def __init__(self, backend: CacheBackend, settings: Settings) -> None:
        self.backend = backend
        self.popular_tags_ttl = settings.POPULAR_TAGS_CACHE_TTL_SECONDS
        self.popular_tags_size = settings.POPULAR_TAGS_CACHE_SIZE
        self.recommendations_ttl = settings.RECOMMENDATIONS_CACHE_TTL_SECONDS
        self.user_tags_ttl = settings.USER_TAGS_CACHE_TTL_SECONDS
        self.user_matches_ttl = settings.USER_MATCHES_CACHE_TTL_SECONDS

    # ── Key helpers ─────────────────────────────────────────────────

    @staticmethod
    def recommendations_key(user_id: uuid.UUID) -> str:
        return f"{RECOMMENDATIONS_PREFIX}{user_id}"

    @staticmethod
    def user_tags_key(user_id: uuid.UUID) -> str:
        return f"{USER_TAGS_PREFIX}{user_id}"

    @staticmethod
    def user_matches_key(user_id: uuid.UUID) -> str:
        return f"{USER_MATCHES_PREFIX}{user_id}"

    # ── Popular tags ────────────────────────────────────────────────

    async def get_popular_tags(self) -> list[TagResponse] | None:
        return await self._read(POPULAR_TAGS_KEY, _TAGS_ADAPTER)

    async def set_popular_tags(self, tags: list[TagResponse]) -> None:
        await self._write(POPULAR_TAGS_KEY, _TAGS_ADAPTER, tags, self.popular_tags_ttl)

    async def invalidate_popular_tags(self) -> None:
        await self.backend.delete(POPULAR_TAGS_KEY)

    # ── Recommendations ─────────────────────────────────────────────

    async def get_recommendation_entry(
        self, user_id: uuid.UUID
    ) -> CachedRecommendations | None:
        return await self._read(self.recommendations_key(user_id), _RECOMMENDATIONS_ADAPTER)

    async def get_recommendations(
        self, user_id: uuid.UUID
    ) -> list[RecommendationResult] | None:
        entry = await self.get_recommendation_entry(user_id)
        return None if entry is None else entry.results

    async def set_recommendations(
        self,
        user_id: uuid.UUID,
        results: list[RecommendationResult],
        requested: int | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> None:
        """Store ``results`` with the ``count`` and position that produced them.

        ``requested`` defaults to ``len(results)``.
        """
        entry = CachedRecommendations(
            results=results,
            requested=len(results) if requested is None else requested,
            latitude=latitude,
            longitude=longitude,
        )
        await self._write(
            self.recommendations_key(user_id),
            _RECOMMENDATIONS_ADAPTER,
            entry,
            self.recommendations_ttl,
        )

    async def invalidate_recommendations(self, user_id: uuid.UUID) -> None:
        await self.backend.delete(self.recommendations_key(user_id))

    # ── User tags ───────────────────────────────────────────────────

    async def get_user_tags(self, user_id: uuid.UUID) -> list[UserTagResponse] | None:
        return await self._read(self.user_tags_key(user_id), _USER_TAGS_ADAPTER)

    async def set_user_tags(
        self,
        user_id: uuid.UUID,
        user_tags: list[UserTagResponse],
        ttl_seconds: int | None = None,
    ) -> None:
        await self._write(
            self.user_tags_key(user_id),
            _USER_TAGS_ADAPTER,
            user_tags,
            ttl_seconds if ttl_seconds is not None else self.user_tags_ttl,
        )

    async def invalidate_user_tags(self, user_id: uuid.UUID) -> None:
        await self.backend.delete(self.user_tags_key(user_id))

    # ── User matches ────────────────────────────────────────────────

    async def get_user_matches(self, user_id: uuid.UUID) -> list[MatchResponse] | None:
        return await self._read(self.user_matches_key(user_id), _MATCHES_ADAPTER)

    async def set_user_matches(
        self, user_id: uuid.UUID, matches: list[MatchResponse]
    ) -> None:
        await self._write(
            self.user_matches_key(user_id),
            _MATCHES_ADAPTER,
            matches,
            self.user_matches_ttl,
        )

    async def invalidate_user_matches(self, user_id: uuid.UUID) -> None:
        await self.backend.delete(self.user_matches_key(user_id))

    async def clear_user(self, user_id: uuid.UUID) -> None:
        """Drop every per-user entry."""
        await self.invalidate_recommendations(user_id)
        await self.invalidate_user_tags(user_id)
        await self.invalidate_user_matches(user_id)
        logger.info("cache_user_cleared", user_id=str(user_id))

    # ── Internals ───────────────────────────────────────────────────

    async def _read(self, key: str, adapter: TypeAdapter[T]) -> T | None:
        raw = await self.backend.get(key)
        if raw is None:
            logger.debug("cache_miss", key=key)
            return None
        try:
            value = adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "cache_entry_corrupt",
                key=key,
                error_count=exc.error_count(),
            )
            await self.backend.delete(key)
            return None
        logger.debug("cache_hit", key=key)
        return value

    async def _write(self, key: str, adapter: TypeAdapter[T], value: T, ttl_seconds: int) -> None:
        await self.backend.set(key, adapter.dump_json(value).decode(), ttl_seconds)
