"""
Admin API (creators only): watermark settings and preview, static variant regeneration,
forensic investigation, signed-URL cache, tier catalog, data erasure.
"""
import io
import logging

import redis
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from PIL import Image as PILImage
from sqlalchemy.orm import Session

from app.api.deps import get_storage_dep, get_url_cache
from app.core.config import settings
from app.db.session import get_db
from app.delivery.models import Member
from app.delivery.watermark import apply_brand_watermark
from app.forensics.investigation import ForensicInvestigationService
from app.models.user import User
from app.schemas.admin import (
    CacheStatsOut,
    ForensicInvestigateIn,
    ForensicInvestigateOut,
    RegenerateWatermarksIn,
    TaskQueuedOut,
)
from app.schemas.watermark import WatermarkPreviewIn, WatermarkSettingsIn, WatermarkSettingsOut
from app.services.auth.jwt import require_creator
from app.services.images.service import ImageService
from app.services.signed_url_cache import SignedUrlCache
from app.services.watermark_settings.settings_service import WatermarkSettingsService
from app.storage.base import ObjectStorage, StorageError
from app.tiers.catalog import TierCatalogService
from app.utils.watermark import WatermarkError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_creator)])

PREVIEW_SIZE = (800, 600)


# ---------- Watermark settings ----------
@router.get("/watermark-settings", response_model=WatermarkSettingsOut)
def watermark_get_settings(
    member: Member = Depends(require_creator),
    db: Session = Depends(get_db),
):
    return WatermarkSettingsService(db).as_dict(member.user_id)


@router.put("/watermark-settings", response_model=WatermarkSettingsOut)
def watermark_update_settings(
    payload: WatermarkSettingsIn,
    member: Member = Depends(require_creator),
    db: Session = Depends(get_db),
):
    result = WatermarkSettingsService(db).update(member.user_id, payload)
    logger.info("watermark_settings_updated", extra={"user_id": member.user_id})
    return result


def _sample_canvas() -> bytes:
    """Neutral gradient used when no sample image is given."""
    width, height = PREVIEW_SIZE
    img = PILImage.linear_gradient("L").resize((width, height)).convert("RGB")
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()


@router.post("/watermark-preview")
def watermark_preview(
    payload: WatermarkPreviewIn,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage_dep),
):
    base = None
    if payload.image_id:
        image = ImageService(db).get(payload.image_id)
        if image is None:
            raise HTTPException(status_code=404, detail="Image not found")
        try:
            base = storage.get_object(image.object_key)
        except StorageError:
            raise HTTPException(status_code=500, detail="Could not fetch sample image")
    if base is None:
        base = _sample_canvas()

    spec = payload.settings.to_spec()
    try:
        content = apply_brand_watermark(base, spec, storage, payload.text)
    except WatermarkError:
        raise HTTPException(status_code=422, detail="Sample image cannot be decoded")
    media_type = "image/png" if content[:8] == b"\x89PNG\r\n\x1a\n" else "image/jpeg"
    return Response(content=content, media_type=media_type, headers={"Cache-Control": "no-store"})


@router.post("/watermarks/regenerate", response_model=TaskQueuedOut)
def watermarks_regenerate(
    payload: RegenerateWatermarksIn,
    member: Member = Depends(require_creator),
):
    from app.workers.tasks.regenerate_watermarks import regenerate_static_watermarks

    task = regenerate_static_watermarks.delay(member.user_id, payload.set_id)
    logger.info("regenerate_watermarks_queued", extra={"user_id": member.user_id, "set_id": payload.set_id})
    return {"queued": True, "task_id": getattr(task, "id", None)}


# ---------- Forensics ----------
@router.post("/forensics/investigate", response_model=ForensicInvestigateOut)
def forensics_investigate(payload: ForensicInvestigateIn, db: Session = Depends(get_db)):
    accesses = ForensicInvestigationService(db).investigate(
        payload.image_id, payload.start_date, payload.end_date
    )
    return {"image_id": payload.image_id, "access_count": len(accesses), "accesses": accesses}


@router.get("/forensics/suspicious")
def forensics_suspicious(
    min_access_count: int = Query(50, ge=1),
    window_minutes: int = Query(60, ge=1, le=7 * 24 * 60),
    action: str = Query("view", pattern="^(view|download)$"),
    db: Session = Depends(get_db),
):
    users = ForensicInvestigationService(db).suspicious_activity(
        min_access_count=min_access_count,
        window_minutes=window_minutes,
        action=action,
    )
    return {
        "window_minutes": window_minutes,
        "users": [u.model_dump(mode="json") for u in users],
    }


@router.get("/forensics/users/{user_id}/sets/{set_id}")
def forensics_user_set_history(user_id: str, set_id: str, db: Session = Depends(get_db)):
    history = ForensicInvestigationService(db).user_set_history(user_id, set_id)
    return {"user_id": user_id, "set_id": set_id, "accesses": history}


@router.get("/forensics/tracking/{tracking_id}")
def forensics_by_tracking_id(tracking_id: str, db: Session = Depends(get_db)):
    record = ForensicInvestigationService(db).find_by_tracking_id(tracking_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Tracking id not found")
    return record


# ---------- Signed URL cache ----------
@router.get("/cache/stats", response_model=CacheStatsOut)
def cache_stats(cache: SignedUrlCache = Depends(get_url_cache)):
    try:
        entries = cache.count()
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Cache unavailable: {e}")
    return {
        "entries": entries,
        "prefix": cache.prefix,
        "max_ttl_seconds": cache.max_ttl,
        "safety_margin_seconds": cache.safety_margin,
        "url_ttl_seconds": settings.signed_url_ttl_seconds,
    }


@router.post("/cache/clear")
def cache_clear(cache: SignedUrlCache = Depends(get_url_cache)):
    try:
        removed = cache.clear()
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Cache unavailable: {e}")
    return {"removed": removed}


# ---------- Tier catalog ----------
@router.get("/tier-catalog")
def tier_catalog_get(db: Session = Depends(get_db)):
    catalog = TierCatalogService(db).load()
    return {
        "tiers": [t.model_dump() for t in catalog.tiers],
        "fetched_at": catalog.fetched_at.isoformat() if catalog.fetched_at else None,
        "expires_at": catalog.expires_at().isoformat() if catalog.expires_at() else None,
    }


@router.post("/tier-catalog/refresh")
def tier_catalog_refresh(db: Session = Depends(get_db)):
    catalog = TierCatalogService(db).refresh()
    return {"tiers": len(catalog.tiers), "empty": catalog.is_empty}


# ---------- Data erasure ----------
@router.post("/users/{user_id}/delete-data", response_model=TaskQueuedOut)
def users_delete_data(user_id: str, db: Session = Depends(get_db)):
    if db.query(User).filter(User.id == user_id).count() == 0:
        raise HTTPException(status_code=404, detail="User not found")
    from app.workers.tasks.delete_user_data import delete_user_data

    task = delete_user_data.delay(user_id)
    logger.info("delete_user_data_queued", extra={"user_id": user_id})
    return {"queued": True, "task_id": getattr(task, "id", None)}
