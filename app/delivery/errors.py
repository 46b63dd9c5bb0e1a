"""
Delivery errors. Only these reach the HTTP layer; render and logging failures are
handled where they happen.
"""
from __future__ import annotations

from app.tiers.models import DenyReason


class DeliveryError(Exception):
    status_code = 500
    error = "delivery_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.error)
        self.message = message or self.error


class AccessDenied(DeliveryError):
    """Gate or tier check failed; reason tells the member what to do about it."""

    status_code = 403
    error = "access_denied"

    def __init__(self, reason: DenyReason, message: str = "") -> None:
        super().__init__(message or _DEFAULT_MESSAGES.get(reason, "Access denied"))
        self.reason = reason


class ImageNotFound(DeliveryError):
    status_code = 404
    error = "not_found"

    def __init__(self, image_id: str) -> None:
        super().__init__(f"Image {image_id} not found")
        self.image_id = image_id


class TransientStorageFailure(DeliveryError):
    """Object store failed and the fallback failed too. Safe to retry."""

    status_code = 500
    error = "storage_unavailable"


_DEFAULT_MESSAGES = {
    "unpublished": "This content has not been published yet.",
    "insufficient_tier": "Your membership tier does not include this content.",
}
