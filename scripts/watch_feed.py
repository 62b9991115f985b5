#!/usr/bin/env python3
"""
watch_feed.py — Follow the live feed from the terminal.

Opens a map session at a fixed location, keeps the poller running and
logs the hotspot ranking every time a refresh is applied. Handy for
checking the seed data, the festival_id fallback against a legacy
collection, or the poll interval, without the mobile app.

Usage (from the repo root):
    python scripts/watch_feed.py
    python scripts/watch_feed.py --lat 30.2669 --lng -97.7728 --window 30
    python scripts/watch_feed.py --festival ""     # all festivals

Stop with Ctrl-C; the poller is stopped before the connection closes.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from festmap.core.config import settings  # noqa: E402
from festmap.core.database import close_mongo_connection, connect_to_mongo, get_db  # noqa: E402
from festmap.models.feed import FeedSnapshot  # noqa: E402
from festmap.services.geolocation import FixedGeolocation  # noqa: E402
from festmap.services.ingestion import FeedPoller, IngestionClient  # noqa: E402
from festmap.services.session import MapSession  # noqa: E402
from festmap.stores.posts import MongoPostStore  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger("watch_feed")


def log_snapshot(snapshot: FeedSnapshot) -> None:
    logger.info("%s (cycle %d)", snapshot.status, snapshot.sequence)
    for rank, hotspot in enumerate(snapshot.hotspots, start=1):
        logger.info(
            "  #%d  %-14s %3d pins  (%.5f, %.5f)",
            rank, hotspot.key, hotspot.count, hotspot.lat, hotspot.lng,
        )


async def watch(args: argparse.Namespace) -> int:
    overrides = {"festival_id": args.festival}
    if args.window is not None:
        overrides["hotspot_window_minutes"] = args.window
    if args.interval is not None:
        overrides["poll_interval_seconds"] = args.interval
    config = settings.model_copy(update=overrides).engine_config()

    await connect_to_mongo()
    db = get_db()
    if db is None:
        logger.error("MongoDB unavailable, nothing to watch")
        return 1

    store = MongoPostStore(db, settings.posts_collection)
    await store.load_schema()
    poller = FeedPoller(IngestionClient(store, config), config)
    poller.subscribe(log_snapshot)

    session = MapSession(poller, FixedGeolocation(args.lat, args.lng))
    try:
        if not await session.open():
            logger.error(poller.status)
            return 1
        logger.info(
            "Watching festival %s around (%.4f, %.4f), Ctrl-C to stop",
            config.tenant_id or "<all>", args.lat, args.lng,
        )
        await asyncio.Event().wait()
    finally:
        await session.close()
        await close_mongo_connection()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Log the FestMap feed and hotspots as they change")
    parser.add_argument("--lat", type=float, default=30.2669)
    parser.add_argument("--lng", type=float, default=-97.7728)
    parser.add_argument("--festival", default=settings.festival_id, help="Festival id ('' for all)")
    parser.add_argument("--window", type=int, default=None, help="Hotspot window in minutes")
    parser.add_argument("--interval", type=float, default=None, help="Poll interval in seconds")
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(watch(args)))
    except KeyboardInterrupt:
        pass
