"""
post.py — Pydantic models for pins and the hotspots derived from them.

PostRecord   — one user-submitted pin, as stored in the `posts` collection
Hotspot      — derived cluster of recent pins in one grid cell (never stored)
GeoPoint     — a lat/lng reading (device location, search bias, pin position)
PostMetadata — caller-supplied fields for a new pin

Stored document shape (Mongo):

  {
    "_id": ObjectId(...),
    "media_url": "http://localhost:8000/api/v1/media/acl_demo/1739999-ab12.jpg",
    "media_type": "image",
    "caption": "Main stage is packed",
    "tag": "crowd:4",
    "lat": 30.2669,
    "lng": -97.7428,
    "created_at": ISODate("2026-10-10T18:00:00Z"),
    "expires_at": ISODate("2026-10-10T19:00:00Z"),
    "festival_id": "acl_demo"          ← optional, schema may not have it
  }
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# Tag given to pins posted without one.
DEFAULT_TAG = "stage"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Stores that hand back naive datetimes are storing UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class GeoPoint(BaseModel):
    lat: float
    lng: float


class PostRecord(BaseModel):
    """A single geotagged pin."""

    id:          str
    media_url:   str
    media_type:  MediaType = MediaType.IMAGE
    caption:     Optional[str] = None
    tag:         str = DEFAULT_TAG
    # Not bounds-checked: bad coordinates just produce a degenerate hotspot.
    lat:         float
    lng:         float
    created_at:  datetime
    expires_at:  Optional[datetime] = None
    festival_id: Optional[str] = None

    @field_validator("tag", mode="before")
    @classmethod
    def _default_tag(cls, value):
        return value or DEFAULT_TAG

    @field_validator("created_at", "expires_at")
    @classmethod
    def _utc(cls, value):
        return _as_utc(value)


class Hotspot(BaseModel):
    """A cluster of recent pins within one grid cell."""

    key:   str    # "{cell_x}:{cell_y}", stable for the same cell
    count: int    # contributing pins
    lat:   float  # centroid latitude (mean of contributing pins)
    lng:   float  # centroid longitude


class PostMetadata(BaseModel):
    """Fields the user fills in before sharing a pin."""

    caption:    Optional[str] = Field(default=None, max_length=500)
    tag:        Optional[str] = Field(default=None, max_length=100)
    # Crowd density 1–5; encoded into the tag as "crowd:N" when no tag is given.
    crowd:      Optional[int] = Field(default=None, ge=1, le=5)
    media_type: MediaType = MediaType.IMAGE

    def resolved_tag(self) -> str:
        if self.tag:
            return self.tag
        if self.crowd is not None:
            return f"crowd:{self.crowd}"
        return DEFAULT_TAG
