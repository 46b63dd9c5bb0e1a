from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Text

from app.db.base import Base


class ContentSet(Base):
    __tablename__ = "content_sets"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    slug = Column(String, unique=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    min_tier = Column(String, nullable=False, default="bronze")
    # Once set, never cleared: re-publishing must not hide content
    published_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_time = Column(DateTime(timezone=True), nullable=True, index=True)

    # Mutated only through atomic UPDATE ... SET n = n + 1 (ContentSetService)
    view_count = Column(Integer, nullable=False, default=0)
    download_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
