"""
Celery task: persist one forensic access record. Runs on the forensics queue, off the
request path; a failed write is logged and counted, not retried.
"""
import logging

from app.core.celery_app import celery_app
from app.db.session import SessionLocal
from app.forensics.investigation import ForensicInvestigationService
from app.forensics.models import ForensicEvent
from app.utils.metrics import forensic_log_failures_total

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.workers.tasks.forensic_log.record_image_access",
    time_limit=30,
    soft_time_limit=25,
    ignore_result=True,
)
def record_image_access(payload: dict) -> dict:
    db = SessionLocal()
    try:
        event = ForensicEvent.model_validate(payload)
        ForensicInvestigationService(db).record(event)
        return {"ok": True}
    except Exception as e:
        db.rollback()
        forensic_log_failures_total.labels(stage="write").inc()
        logger.warning(
            "forensic_log_write_failed",
            extra={
                "user_id": payload.get("user_id"),
                "image_id": payload.get("image_id"),
                "error": str(e),
            },
        )
        return {"ok": False, "error": str(e)}
    finally:
        db.close()
