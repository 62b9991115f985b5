"""
media.py — Media store for uploaded photos and clips.

MediaStore contract:
    upload(path, data, content_type)  — never overwrites an existing object
    public_url(path) → str             — durable URL for the pin's media_url
    download(path) → (bytes, content_type)

GridFSMediaStore keeps objects in a GridFS bucket in the same Mongo
database as the rows, so a single Atlas cluster is the whole backend.
Objects are served back through GET /api/v1/media/{path}.
"""

import logging
from abc import ABC, abstractmethod
from urllib.parse import quote

from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket
from pymongo.errors import PyMongoError

from festmap.core.errors import MediaNotFound, MediaStoreError

logger = logging.getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


class MediaStore(ABC):
    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store `data` at `path`; raise MediaStoreError if it cannot be stored."""

    @abstractmethod
    async def public_url(self, path: str) -> str:
        """Durable public URL for an uploaded object."""

    @abstractmethod
    async def download(self, path: str) -> tuple[bytes, str]:
        """Return (bytes, content_type); raise MediaNotFound for unknown paths."""


class GridFSMediaStore(MediaStore):
    def __init__(self, db: AsyncIOMotorDatabase, bucket_name: str, public_base_url: str) -> None:
        self._bucket = AsyncIOMotorGridFSBucket(db, bucket_name=bucket_name)
        self._base_url = public_base_url.rstrip("/")

    async def upload(self, path, data, content_type):
        try:
            existing = await self._bucket.find({"filename": path}).to_list(length=1)
            if existing:
                raise MediaStoreError(f"object already exists at {path}")
            await self._bucket.upload_from_stream(
                path, data, metadata={"contentType": content_type}
            )
        except PyMongoError as exc:
            raise MediaStoreError(str(exc)) from exc
        logger.debug("Stored %d bytes at %s", len(data), path)

    async def public_url(self, path):
        return f"{self._base_url}/api/v1/media/{quote(path)}"

    async def download(self, path):
        try:
            stream = await self._bucket.open_download_stream_by_name(path)
            data = await stream.read()
        except NoFile as exc:
            raise MediaNotFound(path) from exc
        except PyMongoError as exc:
            raise MediaStoreError(str(exc)) from exc
        content_type = (stream.metadata or {}).get("contentType", _DEFAULT_CONTENT_TYPE)
        return data, content_type
