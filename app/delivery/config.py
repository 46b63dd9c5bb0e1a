"""
Delivery config: typed accessors over app.core.config for URL TTLs and the ID watermark.
"""
from __future__ import annotations

from app.core.config import settings
from app.schemas.watermark import WatermarkPosition, WatermarkSpec, WatermarkType


def get_signed_url_ttl() -> int:
    return settings.signed_url_ttl_seconds


def get_id_watermark_spec() -> WatermarkSpec:
    """Spec of the per-member ID mark stamped on bronze downloads."""
    return WatermarkSpec(
        type=WatermarkType.TEXT,
        position=WatermarkPosition(settings.id_watermark_position),
        opacity=settings.id_watermark_opacity,
        scale=settings.id_watermark_scale,
    )


def get_tracking_labels() -> tuple[str, str]:
    """(Artist, Software) written next to the tracking id."""
    return settings.tracking_artist, settings.tracking_software
