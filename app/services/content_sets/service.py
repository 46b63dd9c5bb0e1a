"""
Content set counters and scheduled publishing.
Counters are single UPDATE statements (n = n + 1); never read-modify-write here.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import case
from sqlalchemy.orm import Session

from app.models.content_set import ContentSet
from app.models.image import Image

logger = logging.getLogger(__name__)


class ContentSetService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, set_id: str) -> ContentSet | None:
        return self.db.query(ContentSet).filter(ContentSet.id == set_id).one_or_none()

    def _bump(self, set_id: str, column, delta: int) -> bool:
        if delta >= 0:
            value = column + delta
        else:
            # never below zero
            value = case((column + delta < 0, 0), else_=column + delta)
        updated = (
            self.db.query(ContentSet)
            .filter(ContentSet.id == set_id)
            .update({column: value}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    def increment_views(self, set_id: str) -> bool:
        return self._bump(set_id, ContentSet.view_count, 1)

    def increment_downloads(self, set_id: str) -> bool:
        return self._bump(set_id, ContentSet.download_count, 1)

    def like(self, set_id: str) -> bool:
        return self._bump(set_id, ContentSet.like_count, 1)

    def unlike(self, set_id: str) -> bool:
        return self._bump(set_id, ContentSet.like_count, -1)

    def publish_scheduled(self, now: datetime | None = None) -> list[str]:
        """
        Publish sets whose scheduled time has passed. Only touches rows with
        published_at IS NULL, so an existing publication date is never changed.
        """
        now = now or datetime.now(timezone.utc)
        due = (
            self.db.query(ContentSet.id)
            .filter(
                ContentSet.published_at.is_(None),
                ContentSet.scheduled_time.isnot(None),
                ContentSet.scheduled_time <= now,
            )
            .all()
        )
        set_ids = [row[0] for row in due]
        if not set_ids:
            return []
        (
            self.db.query(ContentSet)
            .filter(ContentSet.id.in_(set_ids), ContentSet.published_at.is_(None))
            .update({ContentSet.published_at: now}, synchronize_session=False)
        )
        self.db.commit()
        logger.info("content_sets_published", extra={"count": len(set_ids)})
        return set_ids

    def image_count(self, set_id: str) -> int:
        return self.db.query(Image).filter(Image.set_id == set_id).count()
