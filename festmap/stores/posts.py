"""
posts.py — Row store for pins.

PostStore is the contract the ingestion client and publisher depend on:

    select_recent(since, festival_id=..., limit=...) → list[dict]
    insert(row) → id

Implementations must report a reference to a column the backing schema
does not have as StoreError(kind=UNKNOWN_COLUMN, column=<name>). The
schema fallback in services/fallback.py keys on that and nothing else.

MongoPostStore
──────────────
Mongo collections are schemaless unless a $jsonSchema validator says
otherwise, so the column set is read from the collection's validator:

  db.createCollection("posts", { validator: { $jsonSchema: {
      bsonType: "object",
      additionalProperties: false,
      properties: { _id: {}, media_url: {}, ..., festival_id: {} }
  }}})

With `additionalProperties: false` only the declared properties exist;
without a strict validator every column is accepted. scripts/seed_posts.py
installs either variant.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError, WriteError

from festmap.core.clock import utcnow
from festmap.core.errors import StoreError, StoreErrorKind

logger = logging.getLogger(__name__)

# Mongo's DocumentValidationFailure
_VALIDATION_FAILED = 121

_PROJECTION = {
    "media_url": 1,
    "media_type": 1,
    "caption": 1,
    "tag": 1,
    "lat": 1,
    "lng": 1,
    "created_at": 1,
    "expires_at": 1,
    "festival_id": 1,
}


class PostStore(ABC):
    """Append-only store of pin rows."""

    def __init__(self, columns: Optional[Iterable[str]] = None) -> None:
        # None means schemaless: every column exists.
        self.columns: Optional[frozenset[str]] = frozenset(columns) if columns is not None else None

    def has_column(self, name: str) -> bool:
        return self.columns is None or name in self.columns

    def _require_columns(self, names: Iterable[str]) -> None:
        for name in names:
            if not self.has_column(name):
                raise StoreError(
                    StoreErrorKind.UNKNOWN_COLUMN,
                    f"column '{name}' does not exist on posts",
                    column=name,
                )

    @abstractmethod
    async def select_recent(
        self,
        since: datetime,
        *,
        festival_id: Optional[str] = None,
        limit: int = 250,
    ) -> list[dict[str, Any]]:
        """Rows with created_at > since, newest first, at most `limit`."""

    @abstractmethod
    async def insert(self, row: dict[str, Any]) -> str:
        """Insert one row; the store assigns id and created_at."""


class MongoPostStore(PostStore):
    """PostStore backed by a Motor collection."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        collection: str = "posts",
        columns: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(columns)
        self._db = db
        self._name = collection
        self._collection = db[collection]

    async def load_schema(self) -> Optional[frozenset[str]]:
        """
        Read the column set from the collection's $jsonSchema validator.

        Leaves the store schemaless when the collection does not exist yet
        or its validator allows additional properties.
        """
        try:
            reply = await self._db.command("listCollections", filter={"name": self._name})
        except PyMongoError as exc:
            raise StoreError(StoreErrorKind.UNAVAILABLE, str(exc)) from exc

        batch = reply.get("cursor", {}).get("firstBatch", [])
        schema = {}
        if batch:
            schema = batch[0].get("options", {}).get("validator", {}).get("$jsonSchema", {})

        if schema.get("additionalProperties") is False:
            self.columns = frozenset(schema.get("properties", {})) | {"_id"}
        else:
            self.columns = None

        logger.info(
            "posts schema loaded: %s",
            "schemaless" if self.columns is None else ", ".join(sorted(self.columns)),
        )
        return self.columns

    async def select_recent(self, since, *, festival_id=None, limit=250):
        query: dict[str, Any] = {"created_at": {"$gt": since}}
        if festival_id is not None:
            self._require_columns(["festival_id"])
            query["festival_id"] = festival_id

        rows = []
        try:
            cursor = (
                self._collection.find(query, _PROJECTION)
                .sort("created_at", -1)
                .limit(limit)
            )
            async for doc in cursor:
                rows.append(_doc_to_row(doc))
        except PyMongoError as exc:
            raise StoreError(StoreErrorKind.UNAVAILABLE, str(exc)) from exc
        return rows

    async def insert(self, row):
        self._require_columns(row)
        doc = {**row, "created_at": utcnow()}
        try:
            result = await self._collection.insert_one(doc)
        except WriteError as exc:
            if exc.code == _VALIDATION_FAILED:
                raise StoreError(StoreErrorKind.REJECTED, str(exc)) from exc
            raise StoreError(StoreErrorKind.UNAVAILABLE, str(exc)) from exc
        except PyMongoError as exc:
            raise StoreError(StoreErrorKind.UNAVAILABLE, str(exc)) from exc
        return str(result.inserted_id)


def _doc_to_row(doc: dict[str, Any]) -> dict[str, Any]:
    row = {k: v for k, v in doc.items() if k != "_id"}
    row["id"] = str(doc["_id"])
    return row
