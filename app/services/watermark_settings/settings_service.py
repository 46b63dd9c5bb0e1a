"""Creator brand watermark settings (one row per creator)."""
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.models.watermark_settings import WatermarkSettings
from app.schemas.watermark import WatermarkPosition, WatermarkSettingsIn, WatermarkSpec, WatermarkType

DEFAULTS: dict[str, Any] = {
    "watermark_type": "text",
    "position": "corner",
    "opacity": 0.15,
    "scale": 1.0,
    "offset_x": 0.0,
    "offset_y": 0.0,
    "enabled": True,
    "badge_object_key": None,
}


class WatermarkSettingsService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, user_id: str) -> WatermarkSettings | None:
        return self.db.query(WatermarkSettings).filter(WatermarkSettings.user_id == user_id).one_or_none()

    def get_spec(self, user_id: str) -> WatermarkSpec:
        """Stored spec, or defaults if the creator never saved one."""
        data = self.as_dict(user_id)
        return WatermarkSpec(
            type=WatermarkType(data["watermark_type"]),
            position=WatermarkPosition(data["position"]),
            opacity=data["opacity"],
            scale=data["scale"],
            offset_x=data["offset_x"],
            offset_y=data["offset_y"],
            enabled=data["enabled"],
            badge_object_key=data["badge_object_key"],
        )

    def as_dict(self, user_id: str) -> dict[str, Any]:
        row = self.get(user_id)
        if row is None:
            return {**DEFAULTS, "updated_at": None}
        return {
            "watermark_type": row.watermark_type,
            "position": row.position,
            "opacity": row.opacity,
            "scale": row.scale,
            "offset_x": row.offset_x,
            "offset_y": row.offset_y,
            "enabled": row.enabled,
            "badge_object_key": row.badge_object_key,
            "updated_at": row.updated_at.isoformat() if row.updated_at else None,
        }

    def update(self, user_id: str, data: WatermarkSettingsIn) -> dict[str, Any]:
        """
        Save validated settings. Existing static variants and cached URLs are left
        alone; regeneration is a separate admin action.
        """
        row = self.get(user_id)
        if row is None:
            row = WatermarkSettings(user_id=user_id)
        row.watermark_type = data.watermark_type.value
        row.position = data.position.value
        row.opacity = data.opacity
        row.scale = data.scale
        row.offset_x = data.offset_x
        row.offset_y = data.offset_y
        row.enabled = data.enabled
        row.badge_object_key = data.badge_object_key
        row.updated_at = datetime.now(timezone.utc)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self.as_dict(user_id)
