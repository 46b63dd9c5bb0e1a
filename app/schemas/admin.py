"""
Admin API schemas: forensics, regeneration, cache.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, model_validator


class ForensicInvestigateIn(BaseModel):
    image_id: str
    start_date: datetime | None = None
    end_date: datetime | None = None

    @model_validator(mode="after")
    def check_range(self) -> "ForensicInvestigateIn":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be before end_date")
        return self


class ForensicInvestigateOut(BaseModel):
    image_id: str
    access_count: int
    accesses: list[dict[str, Any]]


class RegenerateWatermarksIn(BaseModel):
    set_id: str | None = None


class TaskQueuedOut(BaseModel):
    queued: bool
    task_id: str | None = None


class CacheStatsOut(BaseModel):
    entries: int
    prefix: str
    max_ttl_seconds: int
    safety_margin_seconds: int
    url_ttl_seconds: int
