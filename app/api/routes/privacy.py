"""
Member privacy actions: request erasure of the caller's own access records.
"""
import logging

from fastapi import APIRouter, Depends

from app.delivery.models import Member
from app.schemas.admin import TaskQueuedOut
from app.services.auth.jwt import get_current_member

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/privacy", tags=["privacy"])


@router.post("/delete", response_model=TaskQueuedOut, status_code=202)
def request_data_deletion(member: Member = Depends(get_current_member)):
    from app.workers.tasks.delete_user_data import delete_user_data

    task = delete_user_data.delay(member.user_id)
    logger.info("delete_user_data_requested", extra={"user_id": member.user_id})
    return {"queued": True, "task_id": getattr(task, "id", None)}
