"""
publisher.py — Turn a captured photo + location + metadata into a pin.

The publish sequence is strictly ordered:

  1. upload the media bytes under a collision-resistant path
         {festival}/{epoch_ms}-{random hex}.jpg
  2. resolve the durable public URL
  3. expires_at = now + post TTL (60 min by default)
  4. insert the row — with festival_id first, without it if the
     schema has no such column (services/fallback.py)
  5. return the new row id

The insert never starts unless the upload succeeded. The new pin is not
pushed into any poller: the next poll (or an explicit refresh) picks it up.
"""

import logging
import secrets
from datetime import timedelta
from typing import Callable

from festmap.core.clock import utcnow
from festmap.core.config import EngineConfig
from festmap.core.errors import InsertError, MediaStoreError, StoreError, UploadError
from festmap.models.post import GeoPoint, MediaType, PostMetadata
from festmap.services.fallback import TENANT_COLUMN, call_with_tenant_fallback
from festmap.stores.media import MediaStore
from festmap.stores.posts import PostStore

logger = logging.getLogger(__name__)

# media_type → (content type, file extension)
_MEDIA_FORMATS = {
    MediaType.IMAGE: ("image/jpeg", "jpg"),
    MediaType.VIDEO: ("video/mp4", "mp4"),
}

# Path prefix used when no festival id is configured.
_SHARED_PREFIX = "shared"


def build_media_path(tenant_id, created_ms: int, extension: str) -> str:
    """Unique object path; the random suffix keeps concurrent uploads apart."""
    prefix = tenant_id or _SHARED_PREFIX
    return f"{prefix}/{created_ms}-{secrets.token_hex(6)}.{extension}"


class PostPublisher:
    def __init__(
        self,
        media: MediaStore,
        store: PostStore,
        config: EngineConfig,
        clock: Callable = utcnow,
    ) -> None:
        self._media = media
        self._store = store
        self._config = config
        self._clock = clock

    async def publish(self, photo: bytes, location: GeoPoint, metadata: PostMetadata) -> str:
        """
        Upload `photo` and insert a pin row for it.

        Returns:
            The store-assigned id of the new pin.

        Raises:
            UploadError: the media store rejected the upload (no row written).
            InsertError: the row insert failed (after any schema fallback).
        """
        now = self._clock()
        content_type, extension = _MEDIA_FORMATS[metadata.media_type]
        path = build_media_path(
            self._config.tenant_id, int(now.timestamp() * 1000), extension
        )

        try:
            await self._media.upload(path, photo, content_type)
            media_url = await self._media.public_url(path)
        except MediaStoreError as exc:
            logger.warning("Upload failed for %s: %s", path, exc)
            raise UploadError(str(exc)) from exc

        row = {
            "media_url":  media_url,
            "media_type": metadata.media_type.value,
            "caption":    metadata.caption or None,
            "tag":        metadata.resolved_tag(),
            "lat":        location.lat,
            "lng":        location.lng,
            "expires_at": now + timedelta(minutes=self._config.post_ttl_minutes),
        }

        async def _insert(tenant_id):
            payload = dict(row)
            if tenant_id is not None:
                payload[TENANT_COLUMN] = tenant_id
            return await self._store.insert(payload)

        try:
            post_id = await call_with_tenant_fallback(
                _insert, self._config.tenant_id, action="insert post"
            )
        except StoreError as exc:
            logger.warning("Insert failed for %s: %s", path, exc)
            raise InsertError(str(exc)) from exc

        logger.info("Published pin %s at (%.5f, %.5f)", post_id, location.lat, location.lng)
        return post_id
