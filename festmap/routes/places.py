"""
places.py — Place search for the map search bar.

Route:
  GET /api/v1/places/search?q=...&lat=...&lng=...

lat/lng (both or neither) bias results towards the current map centre.
Search failures come back as an empty list, never as an error.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from festmap.models.feed import PlaceResult
from festmap.models.post import GeoPoint
from festmap.services.engine import get_place_search
from festmap.services.place_search import PlaceSearchAdapter

router = APIRouter(prefix="/api/v1/places", tags=["places"])


@router.get("/search", response_model=list[PlaceResult])
async def search_places(
    q: str = Query(..., min_length=1, max_length=200),
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    places: PlaceSearchAdapter = Depends(get_place_search),
):
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=422, detail="lat and lng must be given together")

    near = GeoPoint(lat=lat, lng=lng) if lat is not None else None
    return await places.search(q, near=near)
