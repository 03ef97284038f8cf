"""Shared pytest fixtures for Tandem tests."""
import random
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.config import Settings
from app.database import Base
from app.models.enums import InteractionType, TagCategory
from app.models.interaction import UserInteraction
from app.models.tag import Tag, UserTag
from app.services.cache_service import MemoryCacheBackend, RecommendationCache
from app.services.interaction_service import InteractionService
from app.services.location_service import LocationService
from app.services.match_service import MatchService
from app.services.recommendation_service import RecommendationService
from app.services.similarity_service import SimilarityService
from app.services.tag_service import TagService


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── Identities ───────────────────────────────────────────────────────────────

@pytest.fixture
def user_a():
    return uuid.uuid4()


@pytest.fixture
def user_b():
    return uuid.uuid4()


@pytest.fixture
def user_c():
    return uuid.uuid4()


# ── Configuration & cache ────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return Settings(_env_file=None, CACHE_BACKEND="memory")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_backend(clock):
    return MemoryCacheBackend(clock=clock)


@pytest.fixture
def cache(memory_backend, settings):
    return RecommendationCache(memory_backend, settings)


# ── Database ─────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ── Services ─────────────────────────────────────────────────────────────────

@pytest.fixture
def interaction_service(cache):
    return InteractionService(cache)


@pytest.fixture
def tag_service(cache):
    return TagService(cache)


@pytest.fixture
def similarity_service(interaction_service):
    return SimilarityService(interaction_service)


@pytest.fixture
def location_service(interaction_service):
    return LocationService(interaction_service)


@pytest.fixture
def recommendation_service(cache, interaction_service, similarity_service, location_service):
    return RecommendationService(
        cache,
        interaction_service,
        similarity_service,
        location_service,
        rng=random.Random(42),
    )


@pytest.fixture
def match_service(cache, interaction_service):
    return MatchService(cache, interaction_service)


# ── Data builders ────────────────────────────────────────────────────────────

@pytest.fixture
def make_tag(db_session):
    """Insert a tag directly and return it."""
    async def _make(name, category=TagCategory.OTHER, usage_count=0, is_active=True):
        tag = Tag(
            name=name,
            description=f"{name} fans",
            category=category,
            usage_count=usage_count,
            is_active=is_active,
        )
        db_session.add(tag)
        await db_session.flush()
        return tag

    return _make


@pytest.fixture
def hold_tag(db_session):
    """Insert an active UserTag relation directly (no usage bookkeeping)."""
    async def _hold(user_id, tag, weight):
        user_tag = UserTag(user_id=user_id, tag_id=tag.id, weight=weight, tag=tag)
        db_session.add(user_tag)
        await db_session.flush()
        return user_tag

    return _hold


@pytest.fixture
def rate(db_session):
    """Insert a rated interaction directly."""
    async def _rate(user_id, target_id, rating, interaction_type=InteractionType.LIKE):
        interaction = UserInteraction(
            user_id=user_id,
            target_user_id=target_id,
            interaction_type=interaction_type,
            rating=rating,
        )
        db_session.add(interaction)
        await db_session.flush()
        return interaction

    return _rate


# ── HTTP client ──────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def api_client(session_factory, cache, memory_backend):
    """httpx client bound to the ASGI app with the test database and cache.

    The lifespan is not run; ``app.state`` is populated directly and every
    request gets its own session that commits on success.
    """
    from httpx import ASGITransport, AsyncClient

    from app.database import get_db
    from app.main import app

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _test_db
    app.state.cache_backend = memory_backend
    app.state.recommendation_cache = cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    del app.state.cache_backend
    del app.state.recommendation_cache


@pytest.fixture
def as_user():
    """Headers identifying the caller to the API."""
    def _headers(user_id):
        return {"X-User-Id": str(user_id)}

    return _headers
