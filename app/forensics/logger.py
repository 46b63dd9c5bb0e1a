"""
Fire-and-forget forensic logging.

ForensicLogger.log(event) sends the record to the forensics Celery queue and returns
immediately. Delivery is best-effort: a broker failure is logged and counted, never
raised, never retried in the request.
"""
from __future__ import annotations

import logging

from app.forensics.models import ForensicEvent
from app.utils.metrics import forensic_log_failures_total

logger = logging.getLogger(__name__)


class ForensicLogger:
    def __init__(self, send=None) -> None:
        # send(payload: dict) -> None; defaults to the Celery task
        self._send = send

    def _dispatch(self, payload: dict) -> None:
        if self._send is not None:
            self._send(payload)
            return
        from app.workers.tasks.forensic_log import record_image_access

        # single publish attempt
        record_image_access.apply_async((payload,), retry=False)

    def log(self, event: ForensicEvent) -> None:
        try:
            self._dispatch(event.model_dump(mode="json"))
        except Exception as e:
            forensic_log_failures_total.labels(stage="dispatch").inc()
            logger.warning(
                "forensic_log_dispatch_failed",
                extra={
                    "user_id": event.user_id,
                    "image_id": event.image_id,
                    "action": event.action,
                    "tracking_id": event.tracking_id,
                    "error": str(e),
                },
            )
