from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text

from app.db.base import Base


class ImageAccessLog(Base):
    """Append-only forensic record. Rows are only removed by user data erasure."""

    __tablename__ = "image_access_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    image_id = Column(String, nullable=False)
    set_id = Column(String, nullable=True)
    action = Column(String, nullable=False)  # view, download
    ip_address = Column(String, nullable=True)
    user_agent = Column(Text, nullable=True)
    user_tier = Column(String, nullable=True)
    referer = Column(Text, nullable=True)
    tracking_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_image_access_logs_image_created", "image_id", "created_at"),
    )
