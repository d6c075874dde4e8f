"""Shared test fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789abcdef")
os.environ.setdefault("BASE_URL", "http://testserver.local")

from collections.abc import AsyncIterator  # noqa: E402

import pytest  # noqa: E402
from litestar.testing import AsyncTestClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from easy_education.models.base import Base  # noqa: E402
from tests.fixtures.helpers import RecordingDispatcher  # noqa: E402


@pytest.fixture
async def async_engine():
    """Create async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine) -> AsyncIterator[AsyncSession]:
    """Create async session for testing."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def test_user(async_session: AsyncSession):
    """Create a student."""
    from easy_education.models.user import User, UserRole

    user = User(
        id="student-uid-1",
        email="student@example.com",
        display_name="Rahim Student",
        role=UserRole.STUDENT.value,
    )
    async_session.add(user)
    await async_session.commit()
    return user


@pytest.fixture
async def admin_user(async_session: AsyncSession):
    """Create an admin."""
    from easy_education.models.user import User, UserRole

    user = User(
        id="admin-uid-1",
        email="admin@example.com",
        display_name="Karim Admin",
        role=UserRole.ADMIN.value,
    )
    async_session.add(user)
    await async_session.commit()
    return user


@pytest.fixture
async def courses(async_session: AsyncSession):
    """Create one paid and one free course."""
    from easy_education.models.course import Course

    paid = Course(id="course-paid", title="Physics 101", description="Mechanics", price=500.0)
    free = Course(id="course-free", title="Intro to Maths", price=0.0, is_free=True)
    async_session.add_all([paid, free])
    await async_session.commit()
    return paid, free


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    """Dispatcher that records payloads."""
    return RecordingDispatcher()


@pytest.fixture
async def client(async_engine) -> AsyncIterator[AsyncTestClient]:
    """Create test client backed by the test database."""
    from easy_education.app import create_app

    async with AsyncTestClient(app=create_app(async_engine)) as test_client:
        yield test_client

