"""
Execution: ImageDeliveryResolver.resolve(image_id, member, action, client).

Per request:
1. image record + set gate; a failed gate stops here, before any storage work;
2. variant selection (static key or dynamic ID mark);
3. view: signed URL through the cache; download: object bytes (+ ID mark for bronze)
   with the tracking id embedded in metadata;
4. forensic record dispatched without waiting; its failures never reach the caller.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from app.delivery.config import get_id_watermark_spec, get_signed_url_ttl
from app.delivery.errors import AccessDenied, DeliveryError, ImageNotFound, TransientStorageFailure
from app.delivery.gate import check_gate
from app.delivery.models import (
    Action,
    ClientInfo,
    DownloadResult,
    DynamicVariant,
    ImageRecord,
    Member,
    StaticVariant,
    ViewResult,
)
from app.delivery.tracking import embed_tracking_metadata, make_tracking_id
from app.delivery.variants import select_variant
from app.delivery.watermark import apply_id_watermark
from app.forensics.logger import ForensicLogger
from app.forensics.models import ForensicEvent
from app.schemas.watermark import WatermarkSpec
from app.services.signed_url_cache import CacheStatus, SignedUrlCache
from app.storage.base import ObjectStorage, StorageError
from app.tiers.models import TierCatalog
from app.utils.metrics import (
    forensic_log_failures_total,
    image_delivery_duration_seconds,
    image_requests_total,
    signed_urls_issued_total,
)
from app.utils.watermark import WatermarkError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageDeliveryResolver:
    """
    images: anything with get_record(image_id) -> ImageRecord | None (ImageService).
    catalog: tier catalog snapshot for this request; None = fixed tier ordering.
    """

    def __init__(
        self,
        images,
        storage: ObjectStorage,
        url_cache: SignedUrlCache,
        forensic_logger: ForensicLogger,
        catalog: TierCatalog | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_spec: WatermarkSpec | None = None,
        url_ttl_seconds: int | None = None,
    ) -> None:
        self.images = images
        self.storage = storage
        self.url_cache = url_cache
        self.forensic_logger = forensic_logger
        self.catalog = catalog
        self.clock = clock
        self.id_spec = id_spec or get_id_watermark_spec()
        self.url_ttl = url_ttl_seconds if url_ttl_seconds is not None else get_signed_url_ttl()

    def resolve(
        self,
        image_id: str,
        member: Member,
        action: Action,
        client: ClientInfo | None = None,
    ) -> ViewResult | DownloadResult:
        client = client or ClientInfo()
        with image_delivery_duration_seconds.labels(action=action).time():
            try:
                if action == "view":
                    result = self.resolve_view(image_id, member, client)
                else:
                    result = self.resolve_download(image_id, member, client)
            except DeliveryError as e:
                image_requests_total.labels(action=action, tier=member.tier, status=_status_label(e)).inc()
                raise
        image_requests_total.labels(action=action, tier=member.tier, status="ok").inc()
        return result

    # ----- view: signed URL -----

    def resolve_view(self, image_id: str, member: Member, client: ClientInfo) -> ViewResult:
        now = self.clock()
        image = self._authorize(image_id, member, now)
        variant = select_variant(image, member.tier, "view", self.id_spec, member.is_creator)

        url, status = self._signed_url(variant.object_key, member.tier)
        tracking_id = make_tracking_id(member.user_id, image.image_id, _ms(now))
        self._log_access(image, member, "view", client, tracking_id, now)

        logger.info(
            "image_view_resolved",
            extra={
                "image_id": image.image_id,
                "user_id": member.user_id,
                "tier": member.tier,
                "cache_status": status.value,
                "tracking_id": tracking_id,
            },
        )
        return ViewResult(
            url=url,
            expires_in=self.url_ttl,
            tracking_id=tracking_id,
            tier=member.tier,
            cache_status=status,
            filename=image.filename,
            set_id=image.set_id,
        )

    def _signed_url(self, object_key: str, tier: str) -> tuple[str, CacheStatus]:
        lookup = self.url_cache.get(object_key, tier)
        if lookup.status == CacheStatus.HIT and lookup.url:
            return lookup.url, CacheStatus.HIT

        try:
            url = self.storage.sign_url(object_key, self.url_ttl)
        except (StorageError, ValueError) as e:
            logger.error("signed_url_failed", extra={"object_key": object_key, "error": str(e)})
            raise TransientStorageFailure("Could not sign image URL") from e
        signed_urls_issued_total.inc()

        # Backend already failed once in this request; don't pile a write on top
        if lookup.status == CacheStatus.MISS:
            self.url_cache.put(object_key, tier, url, self.url_ttl)
        return url, lookup.status

    # ----- download: processed bytes -----

    def resolve_download(self, image_id: str, member: Member, client: ClientInfo) -> DownloadResult:
        now = self.clock()
        image = self._authorize(image_id, member, now)
        variant = select_variant(image, member.tier, "download", self.id_spec, member.is_creator)

        watermarked = False
        if isinstance(variant, StaticVariant):
            content = self._fetch(variant.object_key)
        else:
            content = self._fetch_dynamic_base(variant)
            content, watermarked = self._apply_dynamic(content, variant, member, image)

        tracking_id = make_tracking_id(member.user_id, image.image_id, _ms(now))
        try:
            content, content_type = embed_tracking_metadata(content, tracking_id, member.tier)
        except ValueError as e:
            raise TransientStorageFailure("Stored image cannot be decoded") from e

        self._log_access(image, member, "download", client, tracking_id, now)
        logger.info(
            "image_download_resolved",
            extra={
                "image_id": image.image_id,
                "user_id": member.user_id,
                "tier": member.tier,
                "tracking_id": tracking_id,
                "renderer": "dynamic" if watermarked else "metadata",
            },
        )
        return DownloadResult(
            content=content,
            content_type=content_type,
            filename=image.filename,
            tracking_id=tracking_id,
            tier=member.tier,
            set_id=image.set_id,
            watermarked=watermarked,
        )

    def _fetch(self, object_key: str) -> bytes:
        try:
            return self.storage.get_object(object_key)
        except (StorageError, ValueError) as e:
            logger.error("image_fetch_failed", extra={"object_key": object_key, "error": str(e)})
            raise TransientStorageFailure("Could not fetch image") from e

    def _fetch_dynamic_base(self, variant: DynamicVariant) -> bytes:
        try:
            return self.storage.get_object(variant.base_key)
        except (StorageError, ValueError) as e:
            if not variant.fallback_key:
                logger.error("image_fetch_failed", extra={"object_key": variant.base_key, "error": str(e)})
                raise TransientStorageFailure("Could not fetch image") from e
            logger.warning(
                "watermarked_variant_unavailable",
                extra={"object_key": variant.base_key, "error": str(e)},
            )
        return self._fetch(variant.fallback_key)

    def _apply_dynamic(
        self,
        content: bytes,
        variant: DynamicVariant,
        member: Member,
        image: ImageRecord,
    ) -> tuple[bytes, bool]:
        try:
            return apply_id_watermark(content, member.identity, variant.spec), True
        except (WatermarkError, OSError) as e:
            # tracking metadata still goes on below
            logger.warning(
                "id_watermark_failed",
                extra={"image_id": image.image_id, "user_id": member.user_id, "error": str(e)},
            )
            return content, False

    # ----- shared steps -----

    def _authorize(self, image_id: str, member: Member, now: datetime) -> ImageRecord:
        image = self.images.get_record(image_id)
        if image is None:
            raise ImageNotFound(image_id)
        decision = check_gate(member, image.gate, self.catalog, now)
        if not decision.allowed:
            logger.info(
                "image_access_denied",
                extra={
                    "image_id": image_id,
                    "user_id": member.user_id,
                    "tier": member.tier,
                    "error": decision.reason,
                },
            )
            raise AccessDenied(decision.reason, decision.message or "")
        return image

    def _log_access(
        self,
        image: ImageRecord,
        member: Member,
        action: Action,
        client: ClientInfo,
        tracking_id: str,
        now: datetime,
    ) -> None:
        event = ForensicEvent(
            user_id=member.user_id,
            image_id=image.image_id,
            set_id=image.set_id,
            action=action,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            user_tier=member.tier,
            referer=client.referer,
            tracking_id=tracking_id,
            timestamp=now,
        )
        try:
            self.forensic_logger.log(event)
        except Exception as e:
            forensic_log_failures_total.labels(stage="dispatch").inc()
            logger.warning(
                "forensic_log_failed",
                extra={"image_id": image.image_id, "user_id": member.user_id, "error": str(e)},
            )


def _ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)


def _status_label(error: DeliveryError) -> str:
    if isinstance(error, AccessDenied):
        return "denied"
    if isinstance(error, ImageNotFound):
        return "not_found"
    return "error"
