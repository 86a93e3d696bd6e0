"""
Pytest Configuration and Fixtures

Provides reusable async fixtures for testing the Learnhub Backend against a
throwaway SQLite database.
"""

import os
import tempfile

# Settings are read at import time: configure before anything imports app.*
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="learnhub-uploads-")
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["ENVIRONMENT"] = "test"

from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.database import Base
from app.core.events import ChangeFeed, attach_change_feed
from app.models import Course, User
from app.models.enums import CourseStatus, UserRole


# ==================== Database Fixtures ====================

@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite so separate sessions see each other's commits."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture
async def engine(database_url) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(database_url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def change_feed(session_maker) -> ChangeFeed:
    feed = ChangeFeed(session_maker)
    yield feed
    feed.close()


@pytest.fixture
def mock_async_session() -> AsyncMock:
    """
    Create a mock async database session.

    Returns:
        AsyncMock configured to behave like AsyncSession.
    """
    session = AsyncMock(spec=AsyncSession)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    return session


@pytest_asyncio.fixture
async def db(session_maker, change_feed) -> AsyncGenerator[AsyncSession, None]:
    """
    Session wired to the change feed, like the one ``get_db`` hands to
    request handlers.
    """
    async with session_maker() as session:
        attach_change_feed(session, change_feed)
        yield session


# ==================== Factories ====================

@pytest.fixture
def make_user(db):
    """
    Factory fixture creating committed users.

    Usage:
        teacher = await make_user(role=UserRole.TEACHER, display_name="Ada")
    """
    counter = {"n": 0}

    async def _make_user(
        role: UserRole = UserRole.STUDENT,
        display_name: str = "",
        email: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"user{n}@example.com",
            display_name=display_name or f"User {n}",
            role=role,
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest.fixture
def make_course(db):
    """Factory fixture creating committed courses with zeroed counters."""

    async def _make_course(
        instructor: User,
        title: str = "Intro to Python",
        category: str = "Programming",
        status: CourseStatus = CourseStatus.PUBLISHED,
        lessons: int = 0,
    ) -> Course:
        course = Course(
            title=title,
            description="",
            category=category,
            duration="1 week",
            price=0.0,
            instructor_id=instructor.id,
            status=status,
            lessons=lessons,
        )
        db.add(course)
        await db.commit()
        return course

    return _make_course


@pytest.fixture
def first_lookup_misses():
    """
    Factory fixture wrapping an async lookup so its first call finds nothing.

    Simulates a concurrent writer inserting the row between the lookup and
    the insert.

    Usage:
        with patch.object(service, "_find", first_lookup_misses(service._find)):
            ...
    """
    def _wrap(lookup):
        calls = {"n": 0}

        async def _lookup(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await lookup(*args, **kwargs)

        return _lookup
    return _wrap


# ==================== HTTP Client Fixtures ====================

@pytest.fixture
def mock_httpx_response():
    """
    Factory fixture to create mock httpx responses.

    Usage:
        response = mock_httpx_response(status_code=200, json_data={"key": "value"})
    """
    def _create_response(status_code: int = 200, json_data: dict = None, text: str = ""):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = json_data or {}
        response.text = text
        return response
    return _create_response
