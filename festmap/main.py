"""
FestMap API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups, and
manages the MongoDB connection and the live feed engine.

Extension points:
  - Add new route groups with app.include_router() below
  - Add new middleware in the middleware block
  - Change startup behaviour in the lifespan context manager
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from festmap.core.config import settings
from festmap.core.database import close_mongo_connection, connect_to_mongo, get_db
from festmap.core.rate_limit import limiter
from festmap.routes.feed import router as feed_router
from festmap.routes.health import router as health_router
from festmap.routes.media import router as media_router
from festmap.routes.places import router as places_router
from festmap.routes.posts import router as posts_router
from festmap.routes.schedule import router as schedule_router
from festmap.services.engine import start_engine, stop_engine

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage startup and shutdown lifecycle.

    Startup connects to MongoDB, then starts the feed poller. Shutdown
    stops the poller (cancelling any in-flight fetch) before the client
    is closed, so no fetch result lands after teardown.
    """
    logger.info(
        "Starting FestMap API (env: %s, festival: %s)",
        settings.environment,
        settings.festival_id or "<all>",
    )
    await connect_to_mongo()
    await start_engine(get_db(), settings.engine_config())
    yield
    logger.info("Shutting down FestMap API")
    await stop_engine()
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="FestMap API",
    description="Live festival map: recent photo pins, crowd hotspots and posting.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
# Routes opt-in with @limiter.limit(...) + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
# CORS: allow the Expo dev server and web preview to call the API.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(feed_router)
app.include_router(posts_router)
app.include_router(media_router)
app.include_router(places_router)
app.include_router(schedule_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "FestMap API",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment,
        "festival_id": settings.festival_id or None,
        "docs": "/docs",
    }
