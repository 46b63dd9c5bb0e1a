from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db.base import Base


class Image(Base):
    __tablename__ = "images"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    set_id = Column(String, ForeignKey("content_sets.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String, nullable=False)
    object_key = Column(String, nullable=False)
    # Pre-rendered brand watermark variant; null until generated
    watermarked_object_key = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
