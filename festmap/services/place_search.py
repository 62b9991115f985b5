"""
PlaceSearchAdapter — Place lookup via the SerpAPI Google Maps engine.

Used by the map search bar: free-text query, optionally biased towards
the current map centre, returns named places with coordinates.

Graceful degradation: if SERPAPI_KEY is not set, or the request fails,
or the payload is not what we expect, search() returns an empty list
with a logged warning. Search is never fatal for the map.
"""

import logging
from typing import Any, Optional

import httpx

from festmap.core.config import settings
from festmap.models.feed import PlaceResult
from festmap.models.post import GeoPoint

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"

# Zoom level sent with a bias coordinate (city-block scale).
_BIAS_ZOOM = 14


class PlaceSearchAdapter:
    """Thin async wrapper around SerpAPI's google_maps engine."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        fallback_location: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = settings.serpapi_key if api_key is None else api_key
        self.fallback_location = fallback_location or settings.place_search_location
        self.enabled = bool(self.api_key)
        self._transport = transport

        if not self.enabled:
            logger.warning("SERPAPI_KEY not set — place search disabled.")

    async def search(self, query: str, near: Optional[GeoPoint] = None) -> list[PlaceResult]:
        """
        Look up places matching `query`.

        Args:
            query: Free-text search ("food trucks", "Honda stage").
            near:  Bias point; without one the configured fallback location is used.

        Returns:
            Places in provider order; entries without coordinates are dropped.
            Returns [] if not configured or on any error.
        """
        if not self.enabled or not query.strip():
            return []

        params: dict[str, Any] = {
            "q": query,
            "engine": "google_maps",
            "type": "search",
            "api_key": self.api_key,
        }
        if near is not None:
            params["ll"] = f"@{near.lat:.6f},{near.lng:.6f},{_BIAS_ZOOM}z"
        else:
            params["location"] = self.fallback_location

        async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
            try:
                response = await client.get(SERPAPI_URL, params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "SerpAPI error: %s — %s",
                    exc.response.status_code,
                    exc.response.text[:200],
                )
                return []
            except Exception as exc:
                logger.error("SerpAPI request failed: %s", exc)
                return []

        return _parse_results(data)


def _parse_results(data: Any) -> list[PlaceResult]:
    if not isinstance(data, dict):
        return []
    items = data.get("local_results") or []
    if not isinstance(items, list):
        logger.warning("SerpAPI local_results is not a list: %r", type(items).__name__)
        return []

    results = []
    for item in items:
        place = _parse_place(item)
        if place is not None:
            results.append(place)
    return results


def _parse_place(item: Any) -> Optional[PlaceResult]:
    """One local result, or None when it has no usable coordinates."""
    if not isinstance(item, dict):
        return None
    gps = item.get("gps_coordinates")
    if not isinstance(gps, dict):
        return None
    lat, lng = gps.get("latitude"), gps.get("longitude")
    if not lat or not lng:
        return None
    try:
        return PlaceResult(
            name=item.get("title") or "",
            address=item.get("address") or "",
            lat=float(lat),
            lng=float(lng),
        )
    except (TypeError, ValueError) as exc:
        # pydantic's ValidationError is a ValueError
        logger.debug("Skipping SerpAPI result %r: %s", item.get("title"), exc)
        return None
