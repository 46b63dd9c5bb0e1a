"""
Wrappers over app.utils.watermark: the per-member ID mark and the creator brand mark.
"""
from __future__ import annotations

import hashlib
import logging
import time

from app.core.config import settings
from app.schemas.watermark import WatermarkSpec, WatermarkType
from app.storage.base import ObjectStorage, StorageError
from app.utils.metrics import watermark_render_duration_seconds
from app.utils.watermark import composite, render_watermark

logger = logging.getLogger(__name__)


def mask_identity(identity: str) -> str:
    """Short, non-reversible code printed on the image: ID: 1A2B3C4D."""
    code = hashlib.md5(identity.encode("utf-8")).hexdigest()[:8].upper()
    return f"ID: {code}"


def apply_id_watermark(image_bytes: bytes, identity: str, spec: WatermarkSpec) -> bytes:
    """Stamp the member's masked identity onto the image."""
    started = time.perf_counter()
    overlay = render_watermark(spec, mask_identity(identity))
    result = composite(image_bytes, overlay, spec)
    watermark_render_duration_seconds.observe(time.perf_counter() - started)
    return result


def apply_brand_watermark(
    image_bytes: bytes,
    spec: WatermarkSpec,
    storage: ObjectStorage,
    brand_text: str | None = None,
) -> bytes:
    """Creator brand mark (text or badge) used for the stored static variant."""
    badge = None
    if spec.type == WatermarkType.IMAGE and spec.badge_object_key:
        try:
            badge = storage.get_object(spec.badge_object_key)
        except StorageError as e:
            # engine falls back to the brand text
            logger.warning(
                "watermark_badge_fetch_failed",
                extra={"object_key": spec.badge_object_key, "error": str(e)},
            )
    overlay = render_watermark(spec, brand_text or settings.watermark_brand_text, badge)
    return composite(image_bytes, overlay, spec)
