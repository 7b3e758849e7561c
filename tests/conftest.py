"""Shared fixtures for DevBytes sync tests."""

from datetime import timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import create_async_engine

from devbytes.db.store import VideoStore


@pytest_asyncio.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(db_engine):
    """Video store with its schema created."""
    video_store = VideoStore(db_engine)
    await video_store.create_schema()
    return video_store


def _as_bytes(value) -> bytes:
    return value if isinstance(value, bytes) else str(value).encode("utf-8")


@pytest.fixture
def mock_redis():
    """Mock Redis client whose hash commands are backed by a dict."""
    hashes: dict[bytes, dict[bytes, bytes]] = {}

    async def hsetnx(key, field, value):
        entry = hashes.setdefault(_as_bytes(key), {})
        if _as_bytes(field) in entry:
            return 0
        entry[_as_bytes(field)] = _as_bytes(value)
        return 1

    async def hset(key, field=None, value=None, mapping=None):
        entry = hashes.setdefault(_as_bytes(key), {})
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        added = 0
        for k, v in items.items():
            added += _as_bytes(k) not in entry
            entry[_as_bytes(k)] = _as_bytes(v)
        return added

    async def hget(key, field):
        return hashes.get(_as_bytes(key), {}).get(_as_bytes(field))

    async def hgetall(key):
        return dict(hashes.get(_as_bytes(key), {}))

    async def exists(*keys):
        return sum(1 for k in keys if _as_bytes(k) in hashes)

    redis = AsyncMock(spec=Redis)
    redis.hsetnx = AsyncMock(side_effect=hsetnx)
    redis.hset = AsyncMock(side_effect=hset)
    redis.hget = AsyncMock(side_effect=hget)
    redis.hgetall = AsyncMock(side_effect=hgetall)
    redis.exists = AsyncMock(side_effect=exists)
    redis.aclose = AsyncMock()
    redis.hashes = hashes
    return redis


@pytest_asyncio.fixture
async def scheduler():
    """A started but paused scheduler so timers never fire during tests."""
    sched = AsyncIOScheduler(timezone=timezone.utc)
    sched.start(paused=True)
    yield sched
    sched.shutdown(wait=False)
