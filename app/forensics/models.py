from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class ForensicEvent(BaseModel):
    """One access to a protected image: who, what, when, from where."""

    user_id: str
    image_id: str
    set_id: str | None = None
    action: Literal["view", "download"]
    ip_address: str | None = None
    user_agent: str | None = None
    user_tier: str | None = None
    referer: str | None = None
    tracking_id: str | None = None
    timestamp: datetime

    model_config = {"frozen": True}


class SuspiciousUser(BaseModel):
    user_id: str
    access_count: int
    distinct_images: int
    first_access: datetime
    last_access: datetime
