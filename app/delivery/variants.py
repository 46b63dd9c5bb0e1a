"""
Variant selection: select_variant(image, tier, action, id_spec) -> StaticVariant | DynamicVariant.

view:     bronze + stored brand variant -> that variant; everyone else -> primary.
download: bronze -> per-member ID mark, rendered over the brand variant when it exists
          (the static mark is shared by every bronze member and cannot attribute a leak);
          higher tiers -> primary, protected by tracking metadata only.
"""
from __future__ import annotations

from app.delivery.models import Action, ImageRecord, StaticVariant, DynamicVariant, Variant
from app.schemas.watermark import WatermarkSpec
from app.tiers.models import Tier


def needs_watermark(tier: Tier | str | None, is_creator: bool = False) -> bool:
    """Bronze, or anything that cannot be ranked, gets the protected variants."""
    if is_creator:
        return False
    parsed = Tier.parse(tier)
    return parsed is None or parsed is Tier.BRONZE


def select_variant(
    image: ImageRecord,
    tier: Tier | str | None,
    action: Action,
    id_spec: WatermarkSpec,
    is_creator: bool = False,
) -> Variant:
    protected = needs_watermark(tier, is_creator)

    if action == "view":
        if protected and image.watermarked_object_key:
            return StaticVariant(object_key=image.watermarked_object_key)
        return StaticVariant(object_key=image.object_key)

    if not protected:
        return StaticVariant(object_key=image.object_key)
    if image.watermarked_object_key:
        return DynamicVariant(
            base_key=image.watermarked_object_key,
            fallback_key=image.object_key,
            spec=id_spec,
        )
    return DynamicVariant(base_key=image.object_key, spec=id_spec)
