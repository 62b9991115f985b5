"""
engine.py — Process-wide feed engine and its FastAPI dependencies.

Same shape as core/database.py: one FeedEngine singleton, filled in by
the app lifespan once MongoDB is reachable and emptied on shutdown.
Routes reach its parts through the get_* dependencies, which tests
replace with app.dependency_overrides.

If MongoDB is down at startup the engine stays empty and the feed and
publish routes answer 503, the way the rest of the API degrades.
"""

import logging
from typing import Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from festmap.core.config import EngineConfig, settings
from festmap.core.errors import StoreError
from festmap.services.ingestion import FeedPoller, IngestionClient
from festmap.services.place_search import PlaceSearchAdapter
from festmap.services.publisher import PostPublisher
from festmap.stores.media import GridFSMediaStore, MediaStore
from festmap.stores.posts import MongoPostStore

logger = logging.getLogger(__name__)


class FeedEngine:
    config: Optional[EngineConfig] = None
    poller: Optional[FeedPoller] = None
    publisher: Optional[PostPublisher] = None
    media: Optional[MediaStore] = None
    places: Optional[PlaceSearchAdapter] = None


engine = FeedEngine()


async def start_engine(db: Optional[AsyncIOMotorDatabase], config: EngineConfig) -> None:
    """Wire stores and services to `db` and start polling."""
    engine.config = config
    engine.places = PlaceSearchAdapter()
    if db is None:
        logger.warning("Feed engine not started: database unavailable")
        return

    store = MongoPostStore(db, settings.posts_collection)
    try:
        await store.load_schema()
    except StoreError as exc:
        logger.warning("Could not read posts schema, assuming schemaless: %s", exc)

    engine.media = GridFSMediaStore(db, settings.media_bucket, settings.public_base_url)
    engine.publisher = PostPublisher(engine.media, store, config)
    engine.poller = FeedPoller(IngestionClient(store, config), config)
    engine.poller.start()


async def stop_engine() -> None:
    if engine.poller is not None:
        await engine.poller.stop()
    engine.poller = None
    engine.publisher = None
    engine.media = None


# ── FastAPI dependencies ──────────────────────────────────────────────────────

def get_engine_config() -> EngineConfig:
    return engine.config or settings.engine_config()


def get_poller() -> FeedPoller:
    if engine.poller is None:
        raise HTTPException(status_code=503, detail="Feed unavailable")
    return engine.poller


def get_publisher() -> PostPublisher:
    if engine.publisher is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return engine.publisher


def get_media_store() -> MediaStore:
    if engine.media is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return engine.media


def get_place_search() -> PlaceSearchAdapter:
    if engine.places is None:
        engine.places = PlaceSearchAdapter()
    return engine.places
