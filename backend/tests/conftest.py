"""
WaterTrack Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── fake_store: in-memory DailyRecordStore (core logic, concurrency)
    ├── user_id: a fresh owner id for store-level tests
    ├── db_engine → session_factory → db_session: SQLite in-memory database
    │   with every table created
    ├── user: a verified User row in db_session
    ├── temp_storage: temporary directory for avatar files
    ├── image_factory / sample_png_bytes: real images produced with Pillow
    └── test_client: HTTPX AsyncClient against a fresh app whose
        get_db_session is bound to session_factory
"""

import asyncio
import io
import os
import tempfile
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID, uuid4

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run BEFORE any watertrack import: settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="watertrack_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MAIL_ECHO_LETTERS"] = "true"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import watertrack.models  # noqa: E402,F401
from watertrack.database import Base, get_db_session  # noqa: E402
from watertrack.domain import DailySummary, DailyWaterRecord, RecordDefaults  # noqa: E402
from watertrack.exceptions import NotFoundError  # noqa: E402
from watertrack.models.user import User  # noqa: E402
from watertrack.services.record_store import DailyRecordStore, RecordMutation  # noqa: E402
from watertrack.services.security import hash_password  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Store
# ══════════════════════════════════════════════════════════════════════════

class InMemoryDailyRecordStore(DailyRecordStore):
    """
    DailyRecordStore backed by a dict.

    Each operation yields to the event loop before taking its lock, so
    concurrent callers really interleave; the lock plays the part of the
    database's unique constraint and row lock.
    """

    def __init__(self):
        self.records: Dict[Tuple[UUID, datetime], DailyWaterRecord] = {}
        self.calls: List[str] = []
        self._lock = asyncio.Lock()

    async def find_one(self, user_id, entry_date) -> Optional[DailyWaterRecord]:
        self.calls.append("find_one")
        await asyncio.sleep(0)
        return self.records.get((user_id, entry_date))

    async def find_one_and_upsert(self, user_id, entry_date, defaults: RecordDefaults):
        self.calls.append("find_one_and_upsert")
        await asyncio.sleep(0)
        async with self._lock:
            key = (user_id, entry_date)
            if key not in self.records:
                self.records[key] = DailyWaterRecord(
                    user_id=user_id,
                    entry_date=entry_date,
                    daily_water_goal=defaults.daily_water_goal,
                )
            return self.records[key]

    async def find_one_and_apply_update(self, user_id, entry_date, mutate: RecordMutation):
        self.calls.append("find_one_and_apply_update")
        await asyncio.sleep(0)
        async with self._lock:
            key = (user_id, entry_date)
            current = self.records.get(key)
            if current is None:
                raise NotFoundError(resource="daily water record")
            updated = mutate(current)
            self.records[key] = updated
            return updated

    async def delete_many(self, user_id) -> int:
        self.calls.append("delete_many")
        keys = [key for key in self.records if key[0] == user_id]
        for key in keys:
            del self.records[key]
        return len(keys)

    async def find_range(self, user_id, start, end) -> List[DailySummary]:
        self.calls.append("find_range")
        matching = sorted(
            (r for (owner, day), r in self.records.items() if owner == user_id and start <= day <= end),
            key=lambda r: r.entry_date,
        )
        return [
            DailySummary(
                entry_date=r.entry_date,
                daily_water_goal=r.daily_water_goal,
                consumed_water=r.consumed_water,
                consumed_times=r.consumed_times,
                consumed_water_percentage=r.consumed_water_percentage,
            )
            for r in matching
        ]


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_store():
    return InMemoryDailyRecordStore()


@pytest_asyncio.fixture
async def db_engine():
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps the single connection alive; with :memory: every new
    connection would otherwise see an empty database.
    """
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
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session):
    """A verified account with the default 2000 ml goal."""
    account = User(
        email="drinker@example.com",
        password_hash=hash_password("correct-horse"),
        name="drinker",
        daily_water_goal=2000,
        avatar_url="https://www.gravatar.com/avatar/test",
        verify=True,
    )
    db_session.add(account)
    await db_session.flush()
    return account


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


def make_image_bytes(size=(300, 200), image_format="PNG", color=(30, 144, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image_bytes


@pytest.fixture
def sample_png_bytes():
    return make_image_bytes()


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to a fresh app instance.

    Every request gets its own session from session_factory (commit on
    success, rollback on error), mirroring get_db_session.
    """
    from watertrack.main import create_app

    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def user_id():
    return uuid4()
