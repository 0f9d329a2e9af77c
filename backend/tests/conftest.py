"""
Botanica Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set BEFORE any botanica import, because the
       settings singleton (and the tenacity retry policy built from it) is
       read at import time.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── engine:         in-memory SQLite (aiosqlite, StaticPool, FKs on), schema created
    ├── db_session:     AsyncSession bound to that engine
    ├── mock_db_session: AsyncMock session for database failure paths
    ├── bucket:         the image bucket directory, created empty
    ├── client:         HTTPX AsyncClient over a fresh app, DB dependency overridden
    ├── admin_headers:  Bearer session for an email with an admin row
    ├── viewer_headers: Bearer session for an email without one
    └── png_bytes:      a 2400×1200 PNG generated with Pillow
"""

import io
import os
import shutil
import tempfile

# Override settings for testing BEFORE any botanica imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SESSION_SECRET_KEY"] = "test-session-secret-key-0123456789abcdef"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="botanica_test_")
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["OAUTH_CLIENT_ID"] = "test-client-id"
os.environ["OAUTH_CLIENT_SECRET"] = "test-client-secret"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import botanica.models  # noqa: F401
from botanica.database import Base, get_db_session
from botanica.main import create_app
from botanica.models.user import ADMIN_ROLE, User
from botanica.services.identity_base import IdentityUser
from botanica.services.local_storage import object_storage
from botanica.services.session_context import session_context

ADMIN_EMAIL = "curator@example.com"
VIEWER_EMAIL = "visitor@example.com"


def _enable_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def engine():
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    event.listen(test_engine.sync_engine, "connect", _enable_foreign_keys)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    A session on the per-test database.

    Usage:
        async def test_get_plant(db_session):
            detail = await plant_service.get_plant(db_session, plant_id)
    """
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def bucket():
    """The configured image bucket, created empty for each test."""
    shutil.rmtree(object_storage.bucket_dir, ignore_errors=True)
    await object_storage.create_bucket()
    yield object_storage
    shutil.rmtree(object_storage.bucket_dir, ignore_errors=True)


@pytest_asyncio.fixture
async def client(session_factory, bucket) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to a freshly built app.

    A new app per test keeps rate-limit counters from leaking between tests.
    Requests get their own session on the test engine, with the same
    commit/rollback behaviour as get_db_session.
    """
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def mock_db_session():
    """An AsyncMock standing in for AsyncSession, for failure-path tests."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.add = MagicMock()
    return session


def _bearer_for(email: str) -> Dict[str, str]:
    session = session_context.issue(IdentityUser(email=email, name="Test User"))
    return {"Authorization": f"Bearer {session.token}"}


@pytest_asyncio.fixture
async def admin_headers(db_session) -> Dict[str, str]:
    db_session.add(User(email=ADMIN_EMAIL, role=ADMIN_ROLE))
    await db_session.commit()
    return _bearer_for(ADMIN_EMAIL)


@pytest_asyncio.fixture
async def viewer_headers(db_session) -> Dict[str, str]:
    db_session.add(User(email=VIEWER_EMAIL, role="viewer"))
    await db_session.commit()
    return _bearer_for(VIEWER_EMAIL)


@pytest.fixture
def png_bytes() -> bytes:
    """A real 2400×1200 PNG, wider than the 1200 px resize limit."""
    buffer = io.BytesIO()
    Image.new("RGB", (2400, 1200), (34, 139, 34)).save(buffer, format="PNG")
    return buffer.getvalue()
