"""
schedule.py — Festival day schedule.

Route:
  GET /api/v1/schedule — ordered list of ScheduleItem

The built-in lineup below is served when the database is down or holds
no schedule for the configured festival. Documents in the schedule
collection look like:

  { "festival_id": "acl_demo", "position": 3, "time": "12:00 PM",
    "title": "Main Stage: Band A", "stage": "Main Stage" }

and are returned in `position` order. scripts/seed_posts.py writes the
built-in lineup there so it can be edited in place.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import ValidationError

from festmap.core.config import EngineConfig, settings
from festmap.core.database import get_db
from festmap.models.schedule import ScheduleItem
from festmap.services.engine import get_engine_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/schedule", tags=["schedule"])


# ── Built-in lineup ───────────────────────────────────────────────────────────

DEFAULT_SCHEDULE: list[ScheduleItem] = [
    ScheduleItem(time="10:00 AM", title="Gates Open"),
    ScheduleItem(time="11:00 AM", title="Opening Ceremony"),
    ScheduleItem(time="12:00 PM", title="Main Stage: Band A", stage="Main Stage"),
    ScheduleItem(time="1:30 PM",  title="Food Truck Lunch"),
    ScheduleItem(time="2:00 PM",  title="Workshop: Dance Lessons"),
    ScheduleItem(time="3:00 PM",  title="Main Stage: Band B", stage="Main Stage"),
    ScheduleItem(time="4:30 PM",  title="Art Showcase"),
    ScheduleItem(time="6:00 PM",  title="Main Stage: Headliner", stage="Main Stage"),
    ScheduleItem(time="8:00 PM",  title="Closing Fireworks"),
]

_PROJECTION = {"_id": 0, "time": 1, "title": 1, "stage": 1}


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("", response_model=list[ScheduleItem])
async def get_schedule(
    db=Depends(get_db),  # None when MongoDB is unreachable
    config: EngineConfig = Depends(get_engine_config),
):
    """
    Return the schedule for the configured festival, earliest first.

    Falls back to the built-in lineup when the collection is empty or
    the query fails.
    """
    if db is None:
        return DEFAULT_SCHEDULE

    query = {"festival_id": config.tenant_id} if config.tenant_id else {}
    try:
        cursor = db[settings.schedule_collection].find(query, _PROJECTION).sort("position", 1)
        docs = await cursor.to_list(length=200)
    except Exception as exc:
        # Non-fatal: the lineup is still worth showing.
        logger.warning("Schedule query failed: %s", exc)
        return DEFAULT_SCHEDULE

    items = []
    for doc in docs:
        try:
            items.append(ScheduleItem(**doc))
        except ValidationError as exc:
            logger.warning("Skipping malformed schedule entry %r: %s", doc.get("title"), exc)
    return items or DEFAULT_SCHEDULE
