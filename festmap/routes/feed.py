"""
feed.py — Live pin feed routes.

Routes:
  GET /api/v1/feed           — pins + hotspots + status from the running poller
  GET /api/v1/feed/hotspots  — hotspots recomputed on demand with overrides

HOW THE DATA FLOWS
──────────────────
1. The FeedPoller (started in the app lifespan) re-reads the last hour
   of pins every 10 seconds and recomputes the hotspot ranking.
2. Clients poll GET /api/v1/feed; nothing is pushed.
3. ?refresh=true runs one fetch cycle before answering (used by the
   app right after posting so the new pin shows up immediately).

  curl http://localhost:8000/api/v1/feed
  curl "http://localhost:8000/api/v1/feed/hotspots?window_minutes=30&limit=5"
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from festmap.core.config import EngineConfig
from festmap.models.feed import FeedSnapshot
from festmap.models.post import Hotspot
from festmap.services.engine import get_engine_config, get_poller
from festmap.services.hotspots import compute_hotspots
from festmap.services.ingestion import FeedPoller

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/feed", tags=["feed"])


@router.get("", response_model=FeedSnapshot)
async def get_feed(
    refresh: bool = Query(default=False, description="Fetch before answering"),
    poller: FeedPoller = Depends(get_poller),
):
    """Return the current pin set, hotspot ranking and status line."""
    if refresh:
        await poller.refresh()
    return poller.snapshot()


@router.get("/hotspots", response_model=list[Hotspot])
async def get_hotspots(
    window_minutes: Optional[int] = Query(default=None, ge=1, le=1440),
    cell_size: Optional[float] = Query(default=None, gt=0, le=1.0),
    limit: Optional[int] = Query(default=None, ge=1, le=50),
    poller: FeedPoller = Depends(get_poller),
    config: EngineConfig = Depends(get_engine_config),
):
    """
    Recompute hotspots from the current pin set.

    Omitted parameters fall back to the engine configuration, so with no
    query string this returns the same ranking as GET /api/v1/feed.
    """
    if poller.blocked:
        raise HTTPException(status_code=409, detail=poller.status)

    snapshot = poller.snapshot()
    return compute_hotspots(
        snapshot.posts,
        window_minutes or config.hotspot_window_minutes,
        cell_size or config.cell_size_degrees,
        limit=limit or config.hotspot_limit,
    )
