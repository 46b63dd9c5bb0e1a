"""
Celery beat task: publish content sets whose scheduled time has come.
"""
import logging

from app.core.celery_app import celery_app
from app.db.session import SessionLocal
from app.services.content_sets.service import ContentSetService

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.workers.tasks.publish_scheduled.publish_scheduled_sets",
    time_limit=60,
    soft_time_limit=55,
)
def publish_scheduled_sets() -> dict:
    db = SessionLocal()
    try:
        published = ContentSetService(db).publish_scheduled()
        return {"ok": True, "published": published}
    except Exception:
        logger.exception("publish_scheduled_error")
        db.rollback()
        return {"ok": False, "error": "unexpected_error"}
    finally:
        db.close()
