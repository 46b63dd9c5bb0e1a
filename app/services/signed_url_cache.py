"""
Short-lived cache of signed object URLs in Redis, keyed by (object key, tier).

Entry TTL is always min(signed_url_cache_ttl, url_ttl - safety_margin), so a cached
URL dies at least one margin before the URL itself. Backend errors are reported as
CacheStatus.ERROR (never raised): the caller regenerates the URL as on a miss.
"""
import hashlib
import logging
from enum import Enum

import redis
from pydantic import BaseModel

from app.core.config import settings
from app.tiers.models import Tier
from app.utils.metrics import signed_url_cache_total

logger = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    HIT = "HIT"
    MISS = "MISS"
    ERROR = "ERROR"


class CacheLookup(BaseModel):
    url: str | None = None
    status: CacheStatus

    model_config = {"frozen": True}


class SignedUrlCache:
    def __init__(
        self,
        client: redis.Redis | None = None,
        *,
        prefix: str | None = None,
        max_ttl_seconds: int | None = None,
        safety_margin_seconds: int | None = None,
    ) -> None:
        self.client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self.prefix = prefix or settings.signed_url_cache_prefix
        self.max_ttl = max_ttl_seconds if max_ttl_seconds is not None else settings.signed_url_cache_ttl_seconds
        self.safety_margin = (
            safety_margin_seconds
            if safety_margin_seconds is not None
            else settings.signed_url_cache_safety_margin_seconds
        )

    def _key(self, object_key: str, tier: Tier | str | None) -> str:
        digest = hashlib.sha256(f"{object_key}\n{_tier_label(tier)}".encode("utf-8")).hexdigest()
        return f"{self.prefix}{digest}"

    def entry_ttl(self, url_ttl_seconds: int) -> int:
        """Seconds a URL valid for url_ttl_seconds may stay cached (0 = don't cache)."""
        return max(0, min(self.max_ttl, url_ttl_seconds - self.safety_margin))

    def get(self, object_key: str, tier: Tier | str | None) -> CacheLookup:
        try:
            cached = self.client.get(self._key(object_key, tier))
        except redis.RedisError as e:
            logger.warning(
                "signed_url_cache_get_failed",
                extra={"object_key": object_key, "tier": _tier_label(tier), "error": str(e)},
            )
            signed_url_cache_total.labels(status=CacheStatus.ERROR.value).inc()
            return CacheLookup(status=CacheStatus.ERROR)
        if cached:
            signed_url_cache_total.labels(status=CacheStatus.HIT.value).inc()
            return CacheLookup(url=cached, status=CacheStatus.HIT)
        signed_url_cache_total.labels(status=CacheStatus.MISS.value).inc()
        return CacheLookup(status=CacheStatus.MISS)

    def put(self, object_key: str, tier: Tier | str | None, url: str, url_ttl_seconds: int) -> int:
        """Cache url; returns the TTL used (0 if nothing was written)."""
        ttl = self.entry_ttl(url_ttl_seconds)
        if ttl <= 0:
            return 0
        try:
            self.client.setex(self._key(object_key, tier), ttl, url)
        except redis.RedisError as e:
            logger.warning(
                "signed_url_cache_set_failed",
                extra={"object_key": object_key, "tier": _tier_label(tier), "error": str(e)},
            )
            return 0
        return ttl

    def count(self) -> int:
        return sum(1 for _ in self.client.scan_iter(match=f"{self.prefix}*", count=500))

    def clear(self) -> int:
        """Drop every signed URL entry. Returns number of keys removed."""
        removed = 0
        batch: list[str] = []
        for key in self.client.scan_iter(match=f"{self.prefix}*", count=500):
            batch.append(key)
            if len(batch) >= 500:
                removed += self.client.delete(*batch)
                batch = []
        if batch:
            removed += self.client.delete(*batch)
        logger.info("signed_url_cache_cleared", extra={"count": removed})
        return removed


def _tier_label(tier: Tier | str | None) -> str:
    if isinstance(tier, Tier):
        return tier.label
    return (tier or "").strip().lower()
