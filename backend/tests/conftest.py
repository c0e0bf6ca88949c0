"""Shared fixtures: a fresh in-memory database per test and an API client."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import mediaharvest.models  # noqa: F401
from mediaharvest.core.database import Base, get_db
from mediaharvest.schemas.media import CandidateMedia, MediaType


class FakeQueue:
    """Job queue that records submissions instead of running them."""

    backend = "fake"

    def __init__(self):
        self.submitted: list[str] = []
        self.failures = []

    async def submit(self, urls):
        self.submitted.extend(urls)
        return len(urls)

    async def recent_failures(self):
        return list(self.failures)

    async def close(self):
        pass


def image(url: str, title: str = "Image", alt: str | None = "") -> CandidateMedia:
    return CandidateMedia(url=url, type=MediaType.IMAGE, alt=alt, title=title)


def video(url: str, title: str = "Video") -> CandidateMedia:
    return CandidateMedia(url=url, type=MediaType.VIDEO, title=title)


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
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_queue():
    return FakeQueue()


@pytest_asyncio.fixture
async def client(session_factory, fake_queue):
    from mediaharvest.main import app

    async def _get_test_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = _get_test_db
    app.state.job_queue = fake_queue
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.job_queue = None
