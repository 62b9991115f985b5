"""
test_stores.py — Tests for the Mongo row store and the GridFS media store
against in-memory stand-ins for Motor objects.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from gridfs.errors import NoFile
from pymongo.errors import AutoReconnect, WriteError

from festmap.core.errors import MediaNotFound, MediaStoreError, StoreError, StoreErrorKind
from festmap.stores.media import GridFSMediaStore
from festmap.stores.posts import MongoPostStore

T0 = datetime(2026, 10, 10, 18, 0, tzinfo=timezone.utc)


# ── Minimal Motor stand-ins ───────────────────────────────────────────────────

class FakeCollection:
    def __init__(self, error=None):
        self._docs = []
        self.error = error
        self.last_query = None

    async def insert_one(self, doc):
        if self.error is not None:
            raise self.error
        oid = ObjectId()
        self._docs.append({**doc, "_id": oid})
        result = MagicMock()
        result.inserted_id = oid
        return result

    def find(self, query=None, projection=None):
        self.last_query = query or {}
        self._limit_n = None
        return self

    def sort(self, key, direction):
        self._sort = (key, direction)
        return self

    def limit(self, n):
        self._limit_n = n
        return self

    async def __aiter__(self):
        if self.error is not None:
            raise self.error
        docs = [d for d in self._docs if self._matches(d, self.last_query)]
        key, direction = self._sort
        docs.sort(key=lambda d: d[key], reverse=direction < 0)
        for doc in docs[: self._limit_n]:
            yield doc

    @staticmethod
    def _matches(doc, query):
        for k, v in query.items():
            if isinstance(v, dict) and "$gt" in v:
                if not doc.get(k) > v["$gt"]:
                    return False
            elif doc.get(k) != v:
                return False
        return True


class FakeDB:
    def __init__(self, collection=None, validator=None):
        self.collection = collection or FakeCollection()
        self.validator = validator

    def __getitem__(self, name):
        return self.collection

    async def command(self, name, **kwargs):
        batch = []
        if self.validator is not None:
            batch.append({"name": kwargs["filter"]["name"], "options": {"validator": self.validator}})
        return {"cursor": {"firstBatch": batch}}


def _strict_schema(*columns, strict=True):
    return {
        "$jsonSchema": {
            "bsonType": "object",
            "additionalProperties": not strict,
            "properties": {c: {} for c in ("_id",) + columns},
        }
    }


BASE = ("media_url", "media_type", "caption", "tag", "lat", "lng", "created_at", "expires_at")


# ── MongoPostStore ────────────────────────────────────────────────────────────

class TestLoadSchema:
    async def test_missing_collection_is_schemaless(self):
        store = MongoPostStore(FakeDB())

        assert await store.load_schema() is None
        assert store.has_column("festival_id")

    async def test_strict_validator_defines_columns(self):
        store = MongoPostStore(FakeDB(validator=_strict_schema(*BASE)))

        columns = await store.load_schema()

        assert "media_url" in columns
        assert "_id" in columns
        assert not store.has_column("festival_id")

    async def test_permissive_validator_is_schemaless(self):
        store = MongoPostStore(FakeDB(validator=_strict_schema(*BASE, strict=False)))

        assert await store.load_schema() is None


class TestSelectRecent:
    async def test_filters_sorts_and_limits(self):
        db = FakeDB()
        for minutes in (90, 30, 10, 5):
            db.collection._docs.append(
                {"_id": ObjectId(), "lat": 30.0, "lng": -97.0, "created_at": T0 - timedelta(minutes=minutes)}
            )
        store = MongoPostStore(db)

        rows = await store.select_recent(T0 - timedelta(minutes=60), limit=2)

        assert [r["created_at"] for r in rows] == [T0 - timedelta(minutes=5), T0 - timedelta(minutes=10)]
        assert all("_id" not in r and isinstance(r["id"], str) for r in rows)

    async def test_festival_filter_added_to_query(self):
        db = FakeDB()
        store = MongoPostStore(db)

        await store.select_recent(T0, festival_id="acl_demo")

        assert db.collection.last_query == {"created_at": {"$gt": T0}, "festival_id": "acl_demo"}

    async def test_festival_filter_on_legacy_schema_is_unknown_column(self):
        store = MongoPostStore(FakeDB(), columns=("_id",) + BASE)

        with pytest.raises(StoreError) as exc_info:
            await store.select_recent(T0, festival_id="acl_demo")

        assert exc_info.value.is_unknown_column("festival_id")

    async def test_driver_failure_is_unavailable(self):
        store = MongoPostStore(FakeDB(FakeCollection(error=AutoReconnect("connection reset"))))

        with pytest.raises(StoreError) as exc_info:
            await store.select_recent(T0)

        assert exc_info.value.kind is StoreErrorKind.UNAVAILABLE


class TestInsert:
    async def test_returns_id_and_stamps_created_at(self):
        db = FakeDB()
        store = MongoPostStore(db)

        post_id = await store.insert({"media_url": "u", "lat": 1.0, "lng": 2.0})

        (doc,) = db.collection._docs
        assert str(doc["_id"]) == post_id
        assert doc["created_at"].tzinfo is not None

    async def test_unknown_column_rejected_before_write(self):
        db = FakeDB()
        store = MongoPostStore(db, columns=("_id",) + BASE)

        with pytest.raises(StoreError) as exc_info:
            await store.insert({"media_url": "u", "festival_id": "acl_demo"})

        assert exc_info.value.is_unknown_column("festival_id")
        assert db.collection._docs == []

    async def test_validation_failure_is_rejected(self):
        error = WriteError("Document failed validation", code=121)
        store = MongoPostStore(FakeDB(FakeCollection(error=error)))

        with pytest.raises(StoreError) as exc_info:
            await store.insert({"media_url": "u"})

        assert exc_info.value.kind is StoreErrorKind.REJECTED

    async def test_network_failure_is_unavailable(self):
        store = MongoPostStore(FakeDB(FakeCollection(error=AutoReconnect("no primary"))))

        with pytest.raises(StoreError) as exc_info:
            await store.insert({"media_url": "u"})

        assert exc_info.value.kind is StoreErrorKind.UNAVAILABLE


# ── GridFSMediaStore ──────────────────────────────────────────────────────────

class FakeGridOut:
    def __init__(self, data, metadata):
        self._data = data
        self.metadata = metadata

    async def read(self):
        return self._data


class FakeFindCursor:
    def __init__(self, items):
        self._items = items

    async def to_list(self, length=None):
        return self._items[:length]


class FakeBucket:
    def __init__(self):
        self.files = {}

    def find(self, query):
        name = query["filename"]
        return FakeFindCursor([name] if name in self.files else [])

    async def upload_from_stream(self, filename, source, metadata=None):
        self.files[filename] = (source, metadata)
        return ObjectId()

    async def open_download_stream_by_name(self, filename):
        if filename not in self.files:
            raise NoFile(f"no file named {filename}")
        data, metadata = self.files[filename]
        return FakeGridOut(data, metadata)


@pytest.fixture()
def bucket():
    return FakeBucket()


@pytest.fixture()
def gridfs_store(bucket):
    with patch("festmap.stores.media.AsyncIOMotorGridFSBucket", return_value=bucket):
        yield GridFSMediaStore(object(), "posts", "http://localhost:8000/")


class TestGridFSMediaStore:
    async def test_upload_then_download(self, gridfs_store):
        await gridfs_store.upload("acl_demo/1-ab.jpg", b"jpeg", "image/jpeg")

        assert await gridfs_store.download("acl_demo/1-ab.jpg") == (b"jpeg", "image/jpeg")

    async def test_upload_never_overwrites(self, gridfs_store, bucket):
        await gridfs_store.upload("acl_demo/1-ab.jpg", b"first", "image/jpeg")

        with pytest.raises(MediaStoreError):
            await gridfs_store.upload("acl_demo/1-ab.jpg", b"second", "image/jpeg")

        assert bucket.files["acl_demo/1-ab.jpg"][0] == b"first"

    async def test_public_url(self, gridfs_store):
        url = await gridfs_store.public_url("acl_demo/1-ab.jpg")
        assert url == "http://localhost:8000/api/v1/media/acl_demo/1-ab.jpg"

    async def test_missing_object(self, gridfs_store):
        with pytest.raises(MediaNotFound):
            await gridfs_store.download("acl_demo/missing.jpg")

    async def test_missing_content_type_falls_back(self, gridfs_store, bucket):
        bucket.files["legacy.bin"] = (b"??", None)

        assert await gridfs_store.download("legacy.bin") == (b"??", "application/octet-stream")
