"""
posts.py — Publish a new pin.

Route:
  POST /api/v1/posts — upload base64 media and insert the pin row

The app reads the photo with FileSystem.readAsStringAsync(..., base64)
and sends it as image_b64 together with the device location. The media
goes to the media store first; the row is only inserted once the upload
succeeded. After a successful publish the feed is refreshed once so the
response status (and the next GET /api/v1/feed) already includes the pin.

  curl -X POST http://localhost:8000/api/v1/posts \\
    -H 'Content-Type: application/json' \\
    -d "{\"image_b64\": \"$(base64 -i photo.jpg | tr -d '\\n')\", \"lat\": 30.2669, \"lng\": -97.7428, \"crowd\": 4}"
"""

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from festmap.core.config import settings
from festmap.core.errors import InsertError, UploadError
from festmap.core.rate_limit import limiter
from festmap.models.feed import PublishRequest, PublishResponse
from festmap.services.engine import get_poller, get_publisher
from festmap.services.ingestion import FeedPoller
from festmap.services.publisher import PostPublisher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


@router.post("", response_model=PublishResponse, status_code=201)
@limiter.limit(settings.publish_rate_limit)
async def publish_post(
    request: Request,
    payload: PublishRequest,
    publisher: PostPublisher = Depends(get_publisher),
    poller: FeedPoller = Depends(get_poller),
):
    """Store the media, insert the pin and refresh the feed."""
    try:
        photo = base64.b64decode(payload.image_b64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="image_b64 is not valid base64")

    try:
        post_id = await publisher.publish(photo, payload.location, payload.metadata())
    except UploadError as exc:
        raise HTTPException(status_code=502, detail=f"Upload failed: {exc}")
    except InsertError as exc:
        raise HTTPException(status_code=502, detail=f"Saving post failed: {exc}")

    await poller.refresh()
    return PublishResponse(id=post_id, status=poller.status)
