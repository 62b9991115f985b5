"""
schedule.py — Pydantic model for the festival day schedule.

ScheduleItem is one row of the Schedule tab: a display time, the act or
activity, and optionally the stage it happens on.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ScheduleItem(BaseModel):
    time:  str = Field(..., min_length=1, description="Display time, e.g. '12:00 PM'")
    title: str = Field(..., min_length=1)
    stage: Optional[str] = None
