"""
session.py — Presentation adapter between the feed engine and a map UI.

MapSession mirrors what the map screen does: ask for location, centre
on the user, keep the poller running while the map is open, and turn
user actions (search, tapping a result, a hotspot or a pin) into a new
region of interest. PostComposer is the "new post" screen: locate,
share, cancel, with a `posting` flag that is always released.

Neither class renders anything; a UI (or scripts/watch_feed.py) reads
their state and calls their actions.
"""

import logging
from typing import Optional

from festmap.core.errors import PermissionDeniedError, PublishError
from festmap.models.feed import FeedSnapshot, PlaceResult, RegionOfInterest
from festmap.models.post import GeoPoint, Hotspot, PostMetadata
from festmap.services.geolocation import GeolocationProvider
from festmap.services.ingestion import STATUS_PERMISSION_DENIED, FeedPoller
from festmap.services.place_search import PlaceSearchAdapter
from festmap.services.publisher import PostPublisher

logger = logging.getLogger(__name__)

# Viewport spans (degrees) used when the map jumps somewhere.
REGION_DELTA = 0.02
HOTSPOT_DELTA = 0.01


class MapSession:
    def __init__(
        self,
        poller: FeedPoller,
        geolocation: GeolocationProvider,
        places: Optional[PlaceSearchAdapter] = None,
    ) -> None:
        self.poller = poller
        self.geolocation = geolocation
        self.places = places
        self.region: Optional[RegionOfInterest] = None
        self.search_results: list[PlaceResult] = []
        self.blocked = False

    @property
    def snapshot(self) -> FeedSnapshot:
        return self.poller.snapshot()

    async def open(self) -> bool:
        """Centre on the user and start polling; False if location is denied."""
        granted = await self.geolocation.request_permission()
        if not granted:
            self.blocked = True
            self.poller.block(STATUS_PERMISSION_DENIED)
            return False

        try:
            here = await self.geolocation.current_position()
        except PermissionDeniedError:
            self.blocked = True
            self.poller.block(STATUS_PERMISSION_DENIED)
            return False

        self._move_to(here.lat, here.lng, REGION_DELTA)
        self.poller.start()
        return True

    async def close(self) -> None:
        await self.poller.stop()

    async def search(self, query: str) -> list[PlaceResult]:
        """Search near the current centre; jump to the first hit if any."""
        if self.places is None or not query.strip() or self.region is None:
            return []

        near = GeoPoint(lat=self.region.lat, lng=self.region.lng)
        self.search_results = await self.places.search(query, near=near)
        if self.search_results:
            first = self.search_results[0]
            self._move_to(first.lat, first.lng, REGION_DELTA)
        return self.search_results

    def select_result(self, index: int) -> RegionOfInterest:
        result = self.search_results[index]
        self.search_results = []
        return self._move_to(result.lat, result.lng, REGION_DELTA)

    def focus_hotspot(self, key: str) -> Optional[RegionOfInterest]:
        hotspot = self._find_hotspot(key)
        if hotspot is None:
            return None
        return self._move_to(hotspot.lat, hotspot.lng, HOTSPOT_DELTA)

    def focus_post(self, post_id: str) -> Optional[RegionOfInterest]:
        for post in self.poller.snapshot().posts:
            if post.id == post_id:
                return self._move_to(post.lat, post.lng, HOTSPOT_DELTA)
        return None

    def _find_hotspot(self, key: str) -> Optional[Hotspot]:
        for hotspot in self.poller.snapshot().hotspots:
            if hotspot.key == key:
                return hotspot
        return None

    def _move_to(self, lat: float, lng: float, delta: float) -> RegionOfInterest:
        self.region = RegionOfInterest(lat=lat, lng=lng, lat_delta=delta, lng_delta=delta)
        return self.region


class PostComposer:
    """Draft state and the share action for one new pin."""

    def __init__(
        self,
        publisher: PostPublisher,
        geolocation: GeolocationProvider,
        poller: Optional[FeedPoller] = None,
    ) -> None:
        self.publisher = publisher
        self.geolocation = geolocation
        self.poller = poller
        self.metadata = PostMetadata()
        self.location: Optional[GeoPoint] = None
        self.posting = False
        self.error: Optional[str] = None

    async def locate(self) -> Optional[GeoPoint]:
        try:
            if not await self.geolocation.request_permission():
                raise PermissionDeniedError(STATUS_PERMISSION_DENIED)
            self.location = await self.geolocation.current_position()
        except PermissionDeniedError as exc:
            self.location = None
            self.error = str(exc)
        return self.location

    async def share(self, photo: Optional[bytes]) -> Optional[str]:
        """
        Publish the draft with `photo`.

        A None photo means the user backed out of the camera/picker and is
        not an error. Returns the new pin id, or None when nothing was posted
        (see `error` for why).
        """
        self.error = None
        self.posting = True
        try:
            if photo is None:
                return None
            if self.location is None:
                self.error = "Location not available."
                return None

            post_id = await self.publisher.publish(photo, self.location, self.metadata)
            if self.poller is not None:
                await self.poller.refresh()
            return post_id
        except PublishError as exc:
            logger.warning("Share failed: %s", exc)
            self.error = str(exc) or "Failed to share"
            return None
        finally:
            self.posting = False

    def cancel(self) -> None:
        """Discard the draft."""
        self.metadata = PostMetadata()
        self.error = None
        self.posting = False
