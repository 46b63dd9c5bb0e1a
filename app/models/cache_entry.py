from sqlalchemy import Column, DateTime, String, Text

from app.db.base import Base


class CacheEntry(Base):
    """Small DB-backed key/value cache (e.g. the membership tier catalog)."""

    __tablename__ = "cache"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
