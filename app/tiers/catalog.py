"""
Tier catalog: snapshot of the campaign's tiers from the Patreon API, stored in the
`cache` table with an expiry. load() returns an explicit TierCatalog value that callers
pass into resolve_access; a missing or stale row yields an empty catalog.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.cache_entry import CacheEntry
from app.tiers.models import CatalogTier, TierCatalog

logger = logging.getLogger(__name__)

CACHE_KEY = "patreon_tiers"


class TierCatalogService:
    def __init__(self, db: Session, http_client: httpx.Client | None = None) -> None:
        self.db = db
        self._http = http_client
        self.ttl_seconds = settings.tier_catalog_ttl_seconds

    def load(self, now: datetime | None = None) -> TierCatalog:
        """Cached catalog, or TierCatalog.empty() when absent, stale or unreadable."""
        now = now or datetime.now(timezone.utc)
        row = self.db.query(CacheEntry).filter(CacheEntry.key == CACHE_KEY).one_or_none()
        if row is None:
            return TierCatalog.empty()
        expires_at = _aware(row.expires_at)
        if expires_at <= now:
            return TierCatalog.empty()
        try:
            payload = json.loads(row.value)
            tiers = tuple(CatalogTier.model_validate(t) for t in payload.get("tiers", []))
            fetched_at = datetime.fromisoformat(payload["fetched_at"])
        except (ValueError, KeyError, TypeError):
            logger.warning("tier_catalog_corrupt", extra={"error": "unparseable cache row"})
            return TierCatalog.empty()
        return TierCatalog(tiers=tiers, fetched_at=fetched_at, ttl_seconds=self.ttl_seconds)

    def refresh(self, access_token: str | None = None) -> TierCatalog:
        """Fetch tiers from the API and store them. Keeps the old row if the fetch fails."""
        token = access_token or settings.patreon_creator_access_token
        if not token:
            logger.warning("tier_catalog_no_token")
            return self.load()
        tiers = self.fetch_tiers(token)
        if not tiers:
            return self.load()
        now = datetime.now(timezone.utc)
        catalog = TierCatalog(tiers=tuple(tiers), fetched_at=now, ttl_seconds=self.ttl_seconds)
        self._store(catalog)
        logger.info("tier_catalog_refreshed", extra={"count": len(tiers)})
        return catalog

    def fetch_tiers(self, access_token: str) -> list[CatalogTier]:
        url = f"{settings.patreon_api_base}/campaigns"
        params = {
            "include": "tiers",
            "fields[tier]": "title,amount_cents,patron_count,description",
        }
        headers = {
            "Authorization": f"Bearer {access_token}",
            "User-Agent": settings.patreon_user_agent,
        }
        client = self._http or httpx.Client(timeout=10.0)
        try:
            response = client.get(url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("tier_catalog_fetch_failed", extra={"error": str(e)})
            return []
        finally:
            if self._http is None:
                client.close()
        return parse_campaign_tiers(data)

    def _store(self, catalog: TierCatalog) -> None:
        value = json.dumps(
            {
                "fetched_at": catalog.fetched_at.isoformat(),
                "tiers": [t.model_dump() for t in catalog.tiers],
            }
        )
        expires_at = catalog.fetched_at + timedelta(seconds=catalog.ttl_seconds)
        row = self.db.query(CacheEntry).filter(CacheEntry.key == CACHE_KEY).one_or_none()
        if row is None:
            row = CacheEntry(key=CACHE_KEY, value=value, expires_at=expires_at)
        else:
            row.value = value
            row.expires_at = expires_at
        self.db.add(row)
        self.db.commit()


def parse_campaign_tiers(data: dict[str, Any]) -> list[CatalogTier]:
    """Paid tiers from a campaigns?include=tiers response, cheapest first."""
    tiers = []
    for item in data.get("included") or []:
        if item.get("type") != "tier":
            continue
        attrs = item.get("attributes") or {}
        amount = int(attrs.get("amount_cents") or 0)
        if amount <= 0:
            continue
        tiers.append(
            CatalogTier(
                id=str(item.get("id")),
                title=attrs.get("title") or "",
                amount_cents=amount,
                patron_count=int(attrs.get("patron_count") or 0),
            )
        )
    tiers.sort(key=lambda t: t.amount_cents)
    return tiers


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
