"""
Member-facing image delivery: signed URL for viewing, processed bytes for download.
"""
import logging
import time
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_delivery_resolver
from app.db.session import get_db
from app.delivery.models import Member
from app.delivery.resolver import ImageDeliveryResolver
from app.schemas.images import ImageUrlOut
from app.services.auth.jwt import get_current_member
from app.services.auth.request_info import get_client_info
from app.services.content_sets.service import ContentSetService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])

NO_STORE = "private, no-store, max-age=0"


def _bump_counter(db: Session, set_id: str, action: str) -> None:
    svc = ContentSetService(db)
    try:
        if action == "view":
            svc.increment_views(set_id)
        else:
            svc.increment_downloads(set_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("content_set_counter_failed", extra={"set_id": set_id, "action": action, "error": str(e)})


def _elapsed_ms(started: float) -> str:
    return f"{(time.perf_counter() - started) * 1000:.1f}ms"


@router.get("/image/{image_id}")
def get_image_url(
    image_id: str,
    request: Request,
    member: Member = Depends(get_current_member),
    resolver: ImageDeliveryResolver = Depends(get_delivery_resolver),
    db: Session = Depends(get_db),
):
    started = time.perf_counter()
    result = resolver.resolve(image_id, member, "view", get_client_info(request))
    _bump_counter(db, result.set_id, "view")

    body = ImageUrlOut(
        url=result.url,
        expires_in=result.expires_in,
        filename=result.filename,
        tier=result.tier,
        tracking_id=result.tracking_id,
    )
    return JSONResponse(
        content=body.model_dump(by_alias=True),
        headers={
            "Cache-Control": NO_STORE,
            "X-Cache-Status": result.cache_status.value,
            "X-User-Tier": result.tier,
            "X-Tracking-Id": result.tracking_id,
            "X-Response-Time": _elapsed_ms(started),
        },
    )


@router.get("/download/{image_id}")
def download_image(
    image_id: str,
    request: Request,
    member: Member = Depends(get_current_member),
    resolver: ImageDeliveryResolver = Depends(get_delivery_resolver),
    db: Session = Depends(get_db),
):
    started = time.perf_counter()
    result = resolver.resolve(image_id, member, "download", get_client_info(request))
    _bump_counter(db, result.set_id, "download")

    return Response(
        content=result.content,
        media_type=result.content_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(result.filename)}",
            "Cache-Control": "no-cache",
            "X-User-Tier": result.tier,
            "X-Tracking-Id": result.tracking_id,
            "X-Response-Time": _elapsed_ms(started),
        },
    )
