"""
Tiered image delivery (internal library).
Decision (gate, variant selection) and execution (resolver) are separate; the contract
between them is ImageRecord + Member.
"""
from app.delivery.errors import AccessDenied, DeliveryError, ImageNotFound, TransientStorageFailure
from app.delivery.gate import check_gate, is_set_visible
from app.delivery.models import (
    ClientInfo,
    DownloadResult,
    DynamicVariant,
    ImageRecord,
    Member,
    SetGate,
    StaticVariant,
    ViewResult,
)
from app.delivery.resolver import ImageDeliveryResolver
from app.delivery.tracking import embed_tracking_metadata, make_tracking_id
from app.delivery.variants import select_variant

__all__ = [
    "AccessDenied",
    "ClientInfo",
    "DeliveryError",
    "DownloadResult",
    "DynamicVariant",
    "ImageDeliveryResolver",
    "ImageNotFound",
    "ImageRecord",
    "Member",
    "SetGate",
    "StaticVariant",
    "TransientStorageFailure",
    "ViewResult",
    "check_gate",
    "embed_tracking_metadata",
    "is_set_visible",
    "make_tracking_id",
    "select_variant",
]
