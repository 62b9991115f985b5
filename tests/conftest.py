"""
pytest configuration and shared fixtures for the FestMap API tests.

Key concern: tests must not require a live MongoDB, GridFS or SerpAPI.
We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. Setting db_client.client = None (disconnected) so health check
     correctly reports "disconnected" — a valid test-mode state.
  3. In-memory PostStore / MediaStore fakes that honour the same
     contracts as the Mongo implementations (including the column set
     that drives the festival_id fallback).
  4. Clearing SERPAPI_KEY so place search never leaves the process.
"""

import os
from datetime import datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["SERPAPI_KEY"] = ""
os.environ.setdefault("FESTIVAL_ID", "acl_demo")

from festmap.core.errors import MediaNotFound, MediaStoreError  # noqa: E402
from festmap.core.clock import utcnow  # noqa: E402
from festmap.stores.media import MediaStore  # noqa: E402
from festmap.stores.posts import PostStore  # noqa: E402

# Fixed reference time for deterministic window / TTL assertions.
NOW = datetime(2026, 10, 10, 18, 0, tzinfo=timezone.utc)

# Every column of a fully migrated posts collection.
ALL_COLUMNS = frozenset(
    {
        "_id", "media_url", "media_type", "caption", "tag",
        "lat", "lng", "created_at", "expires_at", "festival_id",
    }
)
LEGACY_COLUMNS = ALL_COLUMNS - {"festival_id"}


# ── In-memory stores ──────────────────────────────────────────────────────────

class FakePostStore(PostStore):
    """
    List-backed PostStore.

    `fail_with` holds exceptions raised by the next calls, in order, before
    any column check. `calls` records every select/insert attempt.
    """

    def __init__(self, columns=ALL_COLUMNS, clock=utcnow):
        super().__init__(columns)
        self.rows: list[dict] = []
        self.calls: list[tuple] = []
        self.fail_with: list[Exception] = []
        self._clock = clock

    def add(self, **row) -> dict:
        row.setdefault("id", str(ObjectId()))
        row.setdefault("media_url", f"https://media.test/{row['id']}.jpg")
        row.setdefault("media_type", "image")
        row.setdefault("tag", "stage")
        row.setdefault("created_at", self._clock())
        self.rows.append(row)
        return row

    async def select_recent(self, since, *, festival_id=None, limit=250):
        self.calls.append(("select", since, festival_id, limit))
        if self.fail_with:
            raise self.fail_with.pop(0)
        if festival_id is not None:
            self._require_columns(["festival_id"])

        rows = [
            r for r in self.rows
            if r["created_at"] > since
            and (festival_id is None or r.get("festival_id") == festival_id)
        ]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [dict(r) for r in rows[:limit]]

    async def insert(self, row):
        self.calls.append(("insert", dict(row)))
        if self.fail_with:
            raise self.fail_with.pop(0)
        self._require_columns(row)
        return self.add(**row)["id"]


class FakeMediaStore(MediaStore):
    def __init__(self, fail: Optional[Exception] = None):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail = fail

    async def upload(self, path, data, content_type):
        if self.fail is not None:
            raise self.fail
        if path in self.objects:
            raise MediaStoreError(f"object already exists at {path}")
        self.objects[path] = (data, content_type)

    async def public_url(self, path):
        return f"https://media.test/{path}"

    async def download(self, path):
        if path not in self.objects:
            raise MediaNotFound(path)
        return self.objects[path]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture()
def fixed_clock():
    return lambda: NOW


@pytest.fixture()
def post_store():
    return FakePostStore()


@pytest.fixture()
def media_store():
    return FakeMediaStore()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Reset slowapi's in-memory counters so tests are independent."""
    from festmap.core.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture(autouse=True)
async def mock_db():
    """
    Patch the MongoDB lifecycle for every test.

    - connect_to_mongo → no-op AsyncMock (startup doesn't attempt real connection)
    - close_mongo_connection → no-op AsyncMock
    - db_client.client → None  (health check reports "disconnected", which is fine)
    - db_client.db → None

    Tests that need a real db should override this fixture locally.
    """
    with (
        patch("festmap.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("festmap.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import festmap.core.database as db_module

        # Save originals so we can restore after the test
        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 (mock_db must run first)
    """
    HTTPX async test client wired to the FastAPI app.

    ASGITransport does not run the lifespan, so the feed engine stays
    empty; route tests install fakes with app.dependency_overrides.
    """
    from festmap.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
