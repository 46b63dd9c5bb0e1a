"""
Decision only: resolve_access(user_tier, is_creator, required_tier, catalog) -> AccessDecision.
Pure function, no I/O. The catalog is an injected value; it is never fetched here.
"""
from __future__ import annotations

import logging

from app.tiers.models import AccessDecision, Tier, TierCatalog

logger = logging.getLogger(__name__)


def resolve_access(
    user_tier: Tier | str | None,
    is_creator: bool,
    required_tier: Tier | str | None,
    catalog: TierCatalog | None = None,
) -> AccessDecision:
    """
    Decide whether a member may open a tier-gated resource.

    Rules:
    - creators always pass;
    - no requirement or a bronze requirement passes for every member;
    - when both tiers are present in a fresh, non-empty catalog, compare their prices
      (a stale catalog counts as empty);
    - otherwise compare ranks under bronze < silver < gold < platinum/diamond;
    - anything that cannot be ranked is denied.
    """
    if is_creator:
        return AccessDecision.allow()

    required = Tier.parse(required_tier)
    if required_tier is None or required is Tier.BRONZE:
        return AccessDecision.allow()

    user_name = _name(user_tier) or Tier.BRONZE.label
    required_name = _name(required_tier)

    if catalog is not None and not catalog.is_empty and not catalog.is_stale():
        user_entry = catalog.find(user_name)
        required_entry = catalog.find(required_name)
        if user_entry is not None and required_entry is not None:
            if user_entry.amount_cents >= required_entry.amount_cents:
                return AccessDecision.allow()
            return _insufficient(user_name, required_name)

    user = Tier.parse(user_name)
    if user is None or required is None:
        logger.info(
            "tier_unranked_denied",
            extra={"tier": user_name, "error": f"required={required_name}"},
        )
        return _insufficient(user_name, required_name)

    if user >= required:
        return AccessDecision.allow()
    return _insufficient(user_name, required_name)


def _name(tier: Tier | str | None) -> str:
    if isinstance(tier, Tier):
        return tier.label
    return (tier or "").strip().lower()


def _insufficient(user_name: str, required_name: str) -> AccessDecision:
    return AccessDecision.deny(
        "insufficient_tier",
        f"This content requires {required_name} tier or higher. Your current tier is {user_name}.",
    )
