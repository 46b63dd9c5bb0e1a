from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class WatermarkType(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class WatermarkPosition(str, Enum):
    CORNER = "corner"
    CENTER = "center"
    DIAGONAL = "diagonal"
    CUSTOM = "custom"


class WatermarkSpec(BaseModel):
    """Engine input. Range checks live in WatermarkSettingsIn, not here."""

    type: WatermarkType = WatermarkType.TEXT
    position: WatermarkPosition = WatermarkPosition.CORNER
    opacity: float = 0.15
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    enabled: bool = True
    badge_object_key: str | None = None

    model_config = {"frozen": True}


class WatermarkSettingsIn(BaseModel):
    """Creator's brand watermark as submitted from the admin UI."""

    watermark_type: WatermarkType
    position: WatermarkPosition
    opacity: float = Field(..., ge=0.0, le=1.0)
    # 0.1 .. 10 (10% .. 1000%)
    scale: float = Field(1.0, ge=0.1, le=10.0)
    offset_x: float = Field(0.0, ge=-50.0, le=50.0)
    offset_y: float = Field(0.0, ge=-50.0, le=50.0)
    enabled: bool = True
    badge_object_key: str | None = None

    @field_validator("offset_x", "offset_y")
    @classmethod
    def round_offset(cls, v: float) -> float:
        return round(v, 1)

    @model_validator(mode="after")
    def badge_required_for_image(self) -> "WatermarkSettingsIn":
        if self.watermark_type == WatermarkType.IMAGE and not self.badge_object_key:
            raise ValueError("badge_object_key is required for image watermarks")
        if self.watermark_type == WatermarkType.TEXT:
            self.badge_object_key = None
        return self

    def to_spec(self) -> WatermarkSpec:
        return WatermarkSpec(
            type=self.watermark_type,
            position=self.position,
            opacity=self.opacity,
            scale=self.scale,
            offset_x=self.offset_x,
            offset_y=self.offset_y,
            enabled=self.enabled,
            badge_object_key=self.badge_object_key,
        )


class WatermarkSettingsOut(BaseModel):
    watermark_type: WatermarkType
    position: WatermarkPosition
    opacity: float
    scale: float
    offset_x: float
    offset_y: float
    enabled: bool
    badge_object_key: str | None = None
    updated_at: str | None = None


class WatermarkPreviewIn(BaseModel):
    settings: WatermarkSettingsIn
    image_id: str | None = None
    text: str | None = None
