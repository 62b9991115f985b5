"""
geolocation.py — Device location boundary.

The map session and the post composer only ever ask two things:
may I read the location, and where am I. A denied permission is a normal
answer, not an exception; reading the position without permission is.
"""

from abc import ABC, abstractmethod

from festmap.core.errors import PermissionDeniedError
from festmap.models.post import GeoPoint


class GeolocationProvider(ABC):
    @abstractmethod
    async def request_permission(self) -> bool:
        """True when the user granted location access."""

    @abstractmethod
    async def current_position(self) -> GeoPoint:
        """Current reading; raises PermissionDeniedError without permission."""


class FixedGeolocation(GeolocationProvider):
    """A provider pinned to one coordinate (kiosks, scripts, demos)."""

    def __init__(self, lat: float, lng: float, granted: bool = True) -> None:
        self._point = GeoPoint(lat=lat, lng=lng)
        self._granted = granted

    async def request_permission(self) -> bool:
        return self._granted

    async def current_position(self) -> GeoPoint:
        if not self._granted:
            raise PermissionDeniedError("Location permission denied")
        return self._point
