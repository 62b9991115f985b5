"""
hotspots.py — Spatial-temporal aggregation of pins into hotspots.

Pins created inside the hotspot window are bucketed into a lat/lng grid
(cell size in degrees, ~200 m at 0.002) and each occupied cell becomes a
hotspot whose position is the centroid of its pins, so the marker drifts
toward where the activity actually is rather than the cell centre.

The hotspot window is deliberately shorter than the feed lookback (15 vs
60 minutes by default): pins stay on the map for an hour, but only the
last quarter hour counts towards "where is it busy right now".

Ranking: count descending; ties go to the cell with the most recent pin,
then to the lower grid key, so equal counts always rank the same way.

Pure computation, no I/O — call it again whenever the post set changes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from festmap.core.clock import utcnow
from festmap.models.post import Hotspot, PostRecord


@dataclass
class _Cell:
    count: int = 0
    sum_lat: float = 0.0
    sum_lng: float = 0.0
    latest: Optional[datetime] = None


def cell_key(lat: float, lng: float, cell_size: float) -> str:
    """Grid key of the half-open cell [k*size, (k+1)*size) containing the point."""
    return f"{math.floor(lat / cell_size)}:{math.floor(lng / cell_size)}"


def compute_hotspots(
    posts: Iterable[PostRecord],
    window_minutes: float,
    cell_size: float,
    *,
    now: Optional[datetime] = None,
    limit: int = 3,
) -> list[Hotspot]:
    """
    Rank the busiest grid cells among pins created in the last `window_minutes`.

    Args:
        posts:          Current pin set (any order).
        window_minutes: Only pins with created_at >= now - window count.
        cell_size:      Grid resolution in degrees; must be positive.
        now:            Reference time (defaults to the current UTC time).
        limit:          Maximum number of hotspots returned.

    Returns:
        Up to `limit` hotspots, non-increasing by count. Empty input gives [].
    """
    if cell_size <= 0:
        raise ValueError(f"cell_size must be positive, got {cell_size}")

    cutoff = (now or utcnow()) - timedelta(minutes=window_minutes)
    cells: dict[str, _Cell] = {}

    for post in posts:
        if post.created_at < cutoff:
            continue

        key = cell_key(post.lat, post.lng, cell_size)
        cell = cells.setdefault(key, _Cell())
        cell.count += 1
        cell.sum_lat += post.lat
        cell.sum_lng += post.lng
        if cell.latest is None or post.created_at > cell.latest:
            cell.latest = post.created_at

    ranked = sorted(
        cells.items(),
        key=lambda item: (-item[1].count, -item[1].latest.timestamp(), item[0]),
    )

    return [
        Hotspot(
            key=key,
            count=cell.count,
            lat=cell.sum_lat / cell.count,
            lng=cell.sum_lng / cell.count,
        )
        for key, cell in ranked[:limit]
    ]
