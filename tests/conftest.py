"""Pytest fixtures for the episode services and API.

Tests run against a throwaway SQLite database by default. Point
``TEST_DATABASE_URL`` at a disposable Postgres database (with
``PYTEST_ALLOW_DB=1``) to run the same suite on the production driver.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncGenerator, Optional

import pytest
import pytest_asyncio

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from dotenv import load_dotenv

from airfeed.services.download_dispatcher import JobResult
from airfeed.services.podcast_feed_service import FeedItem
from airfeed.services.station_context import StationContext

load_dotenv()

TEST_API_KEY = "test-api-key"
STATION_PODCAST_ID = 1


def _load_database_url(tmp_path: Path) -> str:
    """Resolve the database URL for tests, enforcing an explicit opt-in."""
    test_db_url = os.getenv("TEST_DATABASE_URL")
    if not test_db_url:
        return f"sqlite+aiosqlite:///{tmp_path / 'airfeed-test.db'}"
    if int(os.getenv("PYTEST_ALLOW_DB", "0")) != 1:
        raise RuntimeError(
            "Running tests against TEST_DATABASE_URL requires setting PYTEST_ALLOW_DB=1"
            " to confirm the configured database is safe to mutate."
        )
    return test_db_url


@dataclass
class FakeJobDispatcher:
    """In-memory ``JobDispatcher`` recording submissions."""

    submitted: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    results: dict[str, JobResult] = field(default_factory=dict)
    fail_with: Optional[Exception] = None

    def submit(self, task_name: str, payload: dict[str, Any]) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.submitted.append((task_name, payload))
        return f"task-{len(self.submitted)}"

    def poll(self, task_id: str) -> Optional[JobResult]:
        return self.results.get(task_id)


@dataclass
class FakeFeedFetcher:
    """Feed fetcher serving canned items per URL."""

    feeds: dict[str, list[FeedItem]] = field(default_factory=dict)
    requested: list[str] = field(default_factory=list)
    fail_with: Optional[Exception] = None

    async def __call__(self, url: str) -> list[FeedItem]:
        self.requested.append(url)
        if self.fail_with is not None:
            raise self.fail_with
        return self.feeds.get(url, [])


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    """Return the database URL the test should target."""
    return _load_database_url(tmp_path)


@pytest_asyncio.fixture()
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Yield an async engine with a freshly created schema."""
    from airfeed.utils.db_async import create_engine_for, import_tables

    import_tables()

    engine = create_engine_for(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)
        await engine.dispose()


@pytest.fixture()
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    from airfeed.utils.db_async import session_factory_for

    return session_factory_for(async_engine)


@pytest_asyncio.fixture()
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session with no transaction open, as request handlers get."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def station() -> StationContext:
    return StationContext(
        station_url="http://radio.test/",
        api_key=TEST_API_KEY,
        station_podcast_id=STATION_PODCAST_ID,
    )


@pytest.fixture()
def dispatcher() -> FakeJobDispatcher:
    return FakeJobDispatcher()


@pytest.fixture()
def feed_fetcher() -> FakeFeedFetcher:
    return FakeFeedFetcher()


@pytest_asyncio.fixture()
async def app_client(
    session_factory: async_sessionmaker[AsyncSession],
    station: StationContext,
    dispatcher: FakeJobDispatcher,
    feed_fetcher: FakeFeedFetcher,
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an HTTP client with the application wired to test collaborators."""
    from airfeed.main import app
    from airfeed.routes.podcast_episodes import get_feed_fetcher
    from airfeed.services.download_dispatcher import get_job_dispatcher
    from airfeed.services.station_context import get_station_context
    from airfeed.utils.db_async import get_session

    async def _get_session_override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override
    app.dependency_overrides[get_station_context] = lambda: station
    app.dependency_overrides[get_job_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_feed_fetcher] = lambda: feed_fetcher
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={"X-API-Key": TEST_API_KEY},
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Ensure HTTPX uses asyncio backend during tests."""
    return "asyncio"
