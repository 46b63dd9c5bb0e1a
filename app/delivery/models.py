"""
DTO delivery: Member (who asks), ClientInfo (from where), ImageRecord + SetGate (what),
variant choice (StaticVariant | DynamicVariant) and the two results (view / download).
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, Field

from app.schemas.watermark import WatermarkSpec
from app.services.signed_url_cache import CacheStatus

Action = Literal["view", "download"]


# ----- Requester (supplied by the session collaborator, read-only here) -----


class Member(BaseModel):
    user_id: str
    tier: str = "bronze"
    is_creator: bool = False
    # Printed into dynamic watermarks; platform user id when known
    watermark_identity: str | None = None

    model_config = {"frozen": True}

    @property
    def identity(self) -> str:
        return self.watermark_identity or self.user_id


class ClientInfo(BaseModel):
    ip_address: str | None = None
    user_agent: str | None = None
    referer: str | None = None

    model_config = {"frozen": True}


# ----- Content facts -----


class SetGate(BaseModel):
    """Temporal visibility plus tier requirement of a content set."""

    set_id: str
    published_at: datetime | None = None
    scheduled_time: datetime | None = None
    min_tier: str | None = None

    model_config = {"frozen": True}


class ImageRecord(BaseModel):
    image_id: str
    object_key: str
    watermarked_object_key: str | None = None
    set_id: str
    filename: str
    gate: SetGate

    model_config = {"frozen": True}


# ----- Variant selection (tagged choice) -----


class StaticVariant(BaseModel):
    """Serve a stored object as-is."""

    kind: Literal["static"] = "static"
    object_key: str

    model_config = {"frozen": True}


class DynamicVariant(BaseModel):
    """Render a per-member ID mark onto base_key (itself possibly the static brand variant)."""

    kind: Literal["dynamic"] = "dynamic"
    base_key: str
    fallback_key: str | None = Field(
        None,
        description="Primary key to fall back to when base_key cannot be fetched",
    )
    spec: WatermarkSpec

    model_config = {"frozen": True}


Variant = Union[StaticVariant, DynamicVariant]


# ----- Results -----


class ViewResult(BaseModel):
    url: str
    expires_in: int
    tracking_id: str
    tier: str
    cache_status: CacheStatus
    filename: str
    set_id: str

    model_config = {"frozen": True}


class DownloadResult(BaseModel):
    content: bytes
    content_type: str
    filename: str
    tracking_id: str
    tier: str
    set_id: str
    watermarked: bool = False

    model_config = {"frozen": True}
