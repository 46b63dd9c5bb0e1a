"""
Decision: is_set_visible / check_gate. Pure, no I/O.
"""
from __future__ import annotations

from datetime import datetime, timezone

from app.delivery.models import Member, SetGate
from app.tiers.models import AccessDecision, TierCatalog
from app.tiers.resolver import resolve_access


def is_set_visible(gate: SetGate, now: datetime) -> bool:
    """Visible iff published, or the scheduled time has come."""
    if gate.published_at is not None:
        return True
    if gate.scheduled_time is None:
        return False
    return _utc(gate.scheduled_time) <= _utc(now)


def check_gate(
    member: Member,
    gate: SetGate,
    catalog: TierCatalog | None,
    now: datetime,
) -> AccessDecision:
    """Temporal visibility first, then the set's tier requirement. Creators skip both."""
    if member.is_creator:
        return AccessDecision.allow()
    if not is_set_visible(gate, now):
        return AccessDecision.deny("unpublished", "This content has not been published yet.")
    return resolve_access(member.tier, member.is_creator, gate.min_tier, catalog)


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; all stored times are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
