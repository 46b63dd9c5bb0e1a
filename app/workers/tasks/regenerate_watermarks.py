"""
Celery task: rebuild the stored brand-watermark variant of every image (or one set)
from the primary object and the creator's current settings.

Deterministic: the same primary + settings always produce the same bytes, so a rerun
after a partial failure is safe.
"""
import logging

from app.core.celery_app import celery_app
from app.core.config import settings
from app.db.session import SessionLocal
from app.delivery.watermark import apply_brand_watermark
from app.services.images.service import ImageService
from app.services.watermark_settings.settings_service import WatermarkSettingsService
from app.storage.base import StorageError
from app.storage.factory import get_storage
from app.storage.keys import watermarked_key_for
from app.utils.watermark import WatermarkError

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


def _content_type(key: str) -> str:
    dot = key.rfind(".")
    return _CONTENT_TYPES.get(key[dot:].lower() if dot >= 0 else "", "application/octet-stream")


def regenerate(db, storage, creator_id: str, set_id: str | None = None, batch_size: int | None = None) -> dict:
    images = ImageService(db)
    spec = WatermarkSettingsService(db).get_spec(creator_id)
    if not spec.enabled:
        logger.info("regenerate_watermarks_disabled", extra={"user_id": creator_id})
        return {"ok": True, "regenerated": 0, "failed": [], "skipped": "disabled"}

    batch_size = batch_size or settings.regenerate_batch_size
    regenerated = 0
    failed: list[dict] = []
    offset = 0
    while True:
        batch = images.list_for_regeneration(set_id=set_id, offset=offset, limit=batch_size)
        if not batch:
            break
        offset += len(batch)
        for image in batch:
            target = watermarked_key_for(image.object_key)
            try:
                original = storage.get_object(image.object_key)
                marked = apply_brand_watermark(original, spec, storage)
                storage.put_object(target, marked, content_type=_content_type(image.object_key))
            except (StorageError, WatermarkError) as e:
                logger.warning(
                    "regenerate_watermark_failed",
                    extra={"image_id": image.id, "object_key": image.object_key, "error": str(e)},
                )
                failed.append({"image_id": image.id, "error": str(e)})
                continue
            if image.watermarked_object_key != target:
                images.set_watermarked_key(image.id, target)
            regenerated += 1

    logger.info(
        "regenerate_watermarks_complete",
        extra={"set_id": set_id, "count": regenerated, "error": f"failed={len(failed)}" if failed else None},
    )
    return {"ok": not failed, "regenerated": regenerated, "failed": failed}


@celery_app.task(
    name="app.workers.tasks.regenerate_watermarks.regenerate_static_watermarks",
    time_limit=3600,
    soft_time_limit=3500,
)
def regenerate_static_watermarks(creator_id: str, set_id: str | None = None) -> dict:
    db = SessionLocal()
    try:
        return regenerate(db, get_storage(), creator_id, set_id=set_id)
    except Exception:
        logger.exception("regenerate_watermarks_error", extra={"set_id": set_id})
        db.rollback()
        return {"ok": False, "error": "unexpected_error"}
    finally:
        db.close()
