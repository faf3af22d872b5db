import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from proxyforge.api.dependencies import get_card_cache, get_idea_generator, get_scryfall_client
from proxyforge.db.database import get_session
from proxyforge.main import app
from proxyforge.models.db import Base
from proxyforge.services.card_cache import CardCache
from proxyforge.services.rate_limit import reset_rate_limiter
from proxyforge.services.scryfall import ScryfallClient

from factories import SCRYFALL_URL, FakeIdeaGenerator


@pytest.fixture(autouse=True)
def clear_rate_limiter():
    """Give every test a fresh process-wide rate limiter."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()


async def _memory_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = await _memory_engine()
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def cache_engine():
    """Separate in-memory database for the card cache."""
    engine = await _memory_engine()
    yield engine
    await engine.dispose()


@pytest.fixture
def card_cache(cache_engine) -> CardCache:
    return CardCache(async_sessionmaker(cache_engine, class_=AsyncSession, expire_on_commit=False))


@pytest.fixture
def fake_generator() -> FakeIdeaGenerator:
    return FakeIdeaGenerator()


async def no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
async def client(session_factory, card_cache, fake_generator):
    """Provide an async test client with the database and upstreams overridden."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_scryfall_client():
        async with ScryfallClient(base_url=SCRYFALL_URL, max_retries=0, sleep=no_sleep) as scryfall:
            yield scryfall

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_scryfall_client] = override_get_scryfall_client
    app.dependency_overrides[get_card_cache] = lambda: card_cache
    app.dependency_overrides[get_idea_generator] = lambda: fake_generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
