"""
Celery task: data erasure request. Removes the member's forensic access records and
stamps data_deletion_requested_at when the user row exists.
"""
import logging
from datetime import datetime, timezone

from app.core.celery_app import celery_app
from app.db.session import SessionLocal
from app.forensics.investigation import ForensicInvestigationService
from app.models.user import User

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.workers.tasks.delete_user_data.delete_user_data",
    time_limit=300,
    soft_time_limit=280,
)
def delete_user_data(user_id: str) -> dict:
    db = SessionLocal()
    try:
        # records are erased even when no user row exists
        deleted_records = ForensicInvestigationService(db).erase_user_records(user_id)

        user = db.query(User).filter(User.id == user_id).one_or_none()
        if user is not None:
            user.data_deletion_requested_at = datetime.now(timezone.utc)
            db.add(user)
        db.commit()

        logger.info(
            "delete_user_data_complete",
            extra={"user_id": user_id, "count": deleted_records},
        )
        return {"ok": True, "deleted_records": deleted_records}
    except Exception:
        logger.exception("delete_user_data_error", extra={"user_id": user_id})
        db.rollback()
        return {"ok": False, "error": "unexpected_error"}
    finally:
        db.close()
