"""
DTO tiers: Tier (fixed ordering), TierCatalog (explicit cache-with-TTL value), AccessDecision.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, Field


class Tier(IntEnum):
    """Membership levels; comparison follows rank."""

    BRONZE = 1
    SILVER = 2
    GOLD = 3
    PLATINUM = 4

    @classmethod
    def parse(cls, value: "Tier | str | None") -> "Tier | None":
        """Name -> Tier. None for unknown names; platinum and diamond share a rank."""
        if isinstance(value, Tier):
            return value
        if not value:
            return None
        name = str(value).strip().lower()
        if name == "diamond":
            return cls.PLATINUM
        for tier in cls:
            if tier.name.lower() == name:
                return tier
        return None

    @property
    def label(self) -> str:
        return self.name.lower()


# ----- Tier catalog from the membership platform -----


class CatalogTier(BaseModel):
    id: str
    title: str
    amount_cents: int
    patron_count: int = 0

    model_config = {"frozen": True}


class TierCatalog(BaseModel):
    """
    Snapshot of the platform's tier list. Passed into resolve_access explicitly;
    an empty catalog means "fall back to the fixed ordering".
    """

    tiers: tuple[CatalogTier, ...] = ()
    fetched_at: datetime | None = None
    ttl_seconds: int = 0

    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> "TierCatalog":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.tiers

    def expires_at(self) -> datetime | None:
        if self.fetched_at is None:
            return None
        return self.fetched_at + timedelta(seconds=self.ttl_seconds)

    def is_stale(self, now: datetime | None = None) -> bool:
        expires = self.expires_at()
        if expires is None:
            return True
        return (now or datetime.now(timezone.utc)) >= expires

    def find(self, name_or_id: str) -> CatalogTier | None:
        needle = name_or_id.strip().lower()
        for tier in self.tiers:
            if tier.id == name_or_id or tier.title.strip().lower() == needle:
                return tier
        return None


# ----- Access decision (pure logic, no I/O) -----

DenyReason = Literal["insufficient_tier", "unpublished"]


class AccessDecision(BaseModel):
    allowed: bool
    reason: DenyReason | None = Field(
        None,
        description="Why access was denied; None when allowed",
    )
    message: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason, message=message)
