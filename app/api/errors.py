"""
Delivery errors -> JSON responses: {"error", "reason", "message"} with no-cache headers.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.delivery.errors import AccessDenied, DeliveryError

logger = logging.getLogger(__name__)


def delivery_error_handler(request: Request, exc: DeliveryError) -> JSONResponse:
    reason = exc.reason if isinstance(exc, AccessDenied) else None
    if exc.status_code >= 500:
        logger.error(
            "delivery_failed",
            extra={"path": request.url.path, "status_code": exc.status_code, "error": exc.message},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "reason": reason, "message": exc.message},
        headers={"Cache-Control": "no-store"},
    )
