from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, String

from app.db.base import Base


class WatermarkSettings(Base):
    """Brand watermark of a creator (one row per creator)."""

    __tablename__ = "creator_watermark_settings"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, unique=True, nullable=False)
    watermark_type = Column(String, nullable=False, default="text")  # text, image
    badge_object_key = Column(String, nullable=True)
    position = Column(String, nullable=False, default="corner")  # corner, center, diagonal, custom
    opacity = Column(Float, nullable=False, default=0.15)
    scale = Column(Float, nullable=False, default=1.0)
    offset_x = Column(Float, nullable=False, default=0.0)
    offset_y = Column(Float, nullable=False, default=0.0)
    enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
