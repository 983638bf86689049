"""
Pytest fixtures for test database, client, and item factories.

Each test gets a fresh schema. By default that is a SQLite file (aiosqlite)
under the test's tmp_path, run with BEGIN IMMEDIATE so write transactions
serialize the way row locks do on PostgreSQL. Point TEST_DATABASE_URL at a
PostgreSQL database to run the same suite against asyncpg.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from seatlock.main import app
from seatlock.db.base import Base
from seatlock.db.session import get_db
from seatlock.models import DanceClass, Event, EventStatus, ItemRef, ItemType

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


def _use_begin_immediate(engine: AsyncEngine) -> None:
    @sa_event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @sa_event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables, yield engine, then drop tables for isolation."""
    if TEST_DATABASE_URL:
        test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    else:
        test_engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'seatlock_test.db'}",
            echo=False,
            connect_args={"timeout": 30},
        )
        _use_begin_immediate(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def call(session_factory):
    """
    Run a service function in its own fresh session, the way a request would:
    `await call(acquire_lock, ref, quantity=1)`.
    """

    async def _call(fn, *args, **kwargs):
        async with session_factory() as session:
            return await fn(session, *args, **kwargs)

    return _call


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get a session bound to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_class(session_factory):
    async def _make(**overrides) -> DanceClass:
        fields = {"title": "Salsa Fundamentals", "max_capacity": 2, "is_active": True}
        fields.update(overrides)
        async with session_factory() as session:
            dance_class = DanceClass(**fields)
            session.add(dance_class)
            await session.commit()
            return dance_class

    return _make


@pytest.fixture
def make_event(session_factory):
    async def _make(**overrides) -> Event:
        fields = {
            "title": "Friday Social",
            "max_attendees": 3,
            "status": EventStatus.PUBLISHED,
            "start_date": datetime.now(timezone.utc) + timedelta(days=14),
        }
        fields.update(overrides)
        async with session_factory() as session:
            event = Event(**fields)
            session.add(event)
            await session.commit()
            return event

    return _make


@pytest_asyncio.fixture
async def test_class(make_class) -> DanceClass:
    """An active class with 2 seats."""
    return await make_class()


@pytest_asyncio.fixture
async def class_ref(test_class: DanceClass) -> ItemRef:
    return ItemRef(ItemType.CLASS, test_class.id)


@pytest_asyncio.fixture
async def test_event(make_event) -> Event:
    """A published event with 3 seats."""
    return await make_event()


@pytest_asyncio.fixture
async def event_ref(test_event: Event) -> ItemRef:
    return ItemRef(ItemType.EVENT, test_event.id)
