"""Pytest configuration and fixtures."""
import itertools
import os
import tempfile
from pathlib import Path

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Point the application at throwaway locations before any of it is imported
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="costume_contest_tests_"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT / 'app.db'}"
os.environ["ADMIN_PASSWORD"] = "test-admin-secret"
os.environ["UPLOAD_DIR"] = str(_TEST_ROOT / "uploads")
os.environ["PUBLIC_BASE_URL"] = "http://test/uploads"
os.environ["LOG_DIR"] = str(_TEST_ROOT / "logs")
os.environ["ENVIRONMENT"] = "test"

from costume_contest import models  # noqa: E402,F401
from costume_contest.database import Base  # noqa: E402
from costume_contest.models.base import ContestPhase  # noqa: E402
from costume_contest.models.entry import Entry  # noqa: E402
from costume_contest.services.blob_storage import LocalBlobStorage, get_blob_storage  # noqa: E402
from costume_contest.services.phase_service import ensure_contest_state  # noqa: E402

API_BASE_URL = "http://test"


@pytest.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database with every table, one per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
def blob_storage(tmp_path):
    """Image store in the test's own temporary directory."""
    storage = LocalBlobStorage(
        tmp_path / "uploads",
        "http://test/uploads",
        allowed_extensions={"jpg", "jpeg", "png"},
        max_bytes=1024,
    )
    storage.ensure_container()
    return storage


@pytest.fixture
async def test_app(test_engine):
    """Create test app with database override."""
    from costume_contest.main import app
    from costume_contest.database import get_db

    async def override_get_db():
        async_session = async_sessionmaker(
            test_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        async with async_session() as session:
            try:
                yield session
            finally:
                await session.close()

    # The app's shared store writes under the session-wide temporary directory
    shared_storage = get_blob_storage()
    shared_storage.ensure_container()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()
    shared_storage.purge()


@pytest.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as ac:
        yield ac


@pytest.fixture
async def set_contest_phase(db_session):
    """Move the contest to a phase directly, bypassing the admin API."""

    async def _set_phase(phase: ContestPhase):
        state = await ensure_contest_state(db_session)
        state.current_phase = phase.value
        await db_session.commit()
        return state

    return _set_phase


@pytest.fixture
async def entry_factory(db_session):
    """Factory for creating entries straight in the database."""
    phone_numbers = itertools.count(1)

    async def _create_entry(
        phone: str | None = None,
        name: str = "Test Participant",
        costume_title: str = "Test Costume",
        **fields,
    ) -> Entry:
        if phone is None:
            phone = f"052{next(phone_numbers):07d}"
        entry = Entry(
            phone=phone,
            name=name,
            costume_title=costume_title,
            image_url=f"https://example.com/{phone}.jpg",
            **fields,
        )
        db_session.add(entry)
        await db_session.commit()
        await db_session.refresh(entry)
        return entry

    return _create_entry
