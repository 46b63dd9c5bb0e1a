from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    patreon_user_id = Column(String, unique=True, nullable=True, index=True)
    email = Column(String, nullable=True)
    name = Column(String, nullable=True)
    # Synced from the membership platform; bronze < silver < gold < platinum/diamond
    membership_tier = Column(String, nullable=False, default="bronze")
    is_creator = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    data_deletion_requested_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def watermark_identity(self) -> str:
        """Identifier printed into dynamic watermarks (platform id when known)."""
        return self.patreon_user_id or self.id
