"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / orchestrators
  - The mobile app to check API connectivity

Returns status + DB connectivity + feed status so callers can tell
"API down" from "API up but DB unreachable" from "feed not polling".
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from festmap.core import database as db_module
from festmap.services.engine import engine

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    feed: str  # poller status line, or "stopped"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Returns the liveness status of the API, its database connection and
    the live feed.

    The API is considered healthy (HTTP 200) even when the database is
    disconnected.
    """
    from festmap.core.config import settings

    db_status = "disconnected"
    try:
        # Access via module reference so tests can patch db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    feed_status = engine.poller.status if engine.poller is not None else "stopped"

    return HealthResponse(
        status="ok",
        version="0.1.0",
        database=db_status,
        feed=feed_status,
        environment=settings.environment,
    )
