"""
feed.py — Pydantic models for the feed, publish and place-search API.

FeedSnapshot     — what GET /api/v1/feed returns (pins + hotspots + status)
PublishRequest   — body of POST /api/v1/posts
PublishResponse  — result of a successful publish
PlaceResult      — one place-search hit
RegionOfInterest — the map viewport the presentation layer is focused on
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from festmap.models.post import GeoPoint, Hotspot, MediaType, PostMetadata, PostRecord


class FeedSnapshot(BaseModel):
    """Current state of the live feed."""

    posts:      list[PostRecord] = Field(default_factory=list)
    hotspots:   list[Hotspot] = Field(default_factory=list)
    status:     str = "Loading…"
    blocked:    bool = False
    sequence:   int = 0                    # sequence number of the applied poll
    updated_at: Optional[datetime] = None  # when that poll was applied


class PublishRequest(BaseModel):
    """Base64-encoded photo plus the location and metadata of a new pin."""

    image_b64:  str = Field(..., min_length=1, description="Base64-encoded media (JPEG or MP4)")
    lat:        float
    lng:        float
    caption:    Optional[str] = Field(default=None, max_length=500)
    tag:        Optional[str] = Field(default=None, max_length=100)
    crowd:      Optional[int] = Field(default=None, ge=1, le=5)
    media_type: MediaType = MediaType.IMAGE

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)

    def metadata(self) -> PostMetadata:
        return PostMetadata(
            caption=self.caption,
            tag=self.tag,
            crowd=self.crowd,
            media_type=self.media_type,
        )


class PublishResponse(BaseModel):
    id:     str
    status: str  # feed status after the follow-up refresh


class PlaceResult(BaseModel):
    name:    str
    address: str = ""
    lat:     float
    lng:     float


class RegionOfInterest(BaseModel):
    """Map viewport: a centre plus the visible span in degrees."""

    lat:       float
    lng:       float
    lat_delta: float = 0.02
    lng_delta: float = 0.02
