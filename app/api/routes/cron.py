"""
Automation endpoints guarded by the shared cron secret (X-Cron-Secret).
"""
import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.services.content_sets.service import ContentSetService

logger = logging.getLogger(__name__)


def verify_cron_secret(x_cron_secret: str | None = Header(None)) -> None:
    expected = settings.cron_secret
    if not expected or not x_cron_secret or not hmac.compare_digest(x_cron_secret, expected):
        logger.warning("cron_secret_rejected")
        raise HTTPException(status_code=401, detail="Unauthorized")


router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])


@router.post("/publish-scheduled")
def publish_scheduled(db: Session = Depends(get_db)):
    published = ContentSetService(db).publish_scheduled()
    return {"published": published, "count": len(published)}
