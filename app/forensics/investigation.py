"""
Forensic record store: append (from the worker), investigation queries (admin) and
erasure (user data deletion). Records are never updated.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.orm import Session as DBSession

from app.forensics.models import ForensicEvent, SuspiciousUser
from app.models.image_access_log import ImageAccessLog
from app.models.user import User

logger = logging.getLogger(__name__)

RECENT_ACCESS_SAMPLE = 10


class ForensicInvestigationService:
    def __init__(self, db: DBSession):
        self.db = db

    def record(self, event: ForensicEvent) -> ImageAccessLog:
        row = ImageAccessLog(
            user_id=event.user_id,
            image_id=event.image_id,
            set_id=event.set_id,
            action=event.action,
            ip_address=event.ip_address,
            user_agent=event.user_agent,
            user_tier=event.user_tier,
            referer=event.referer,
            tracking_id=event.tracking_id,
            created_at=event.timestamp,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def investigate(
        self,
        image_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Every access to image_id (optionally within [start, end]), oldest first."""
        q = (
            self.db.query(ImageAccessLog, User)
            .outerjoin(User, User.id == ImageAccessLog.user_id)
            .filter(ImageAccessLog.image_id == image_id)
        )
        if start is not None:
            q = q.filter(ImageAccessLog.created_at >= start)
        if end is not None:
            q = q.filter(ImageAccessLog.created_at <= end)
        rows = q.order_by(ImageAccessLog.created_at.asc(), ImageAccessLog.id.asc()).all()
        return [self._as_dict(log, user) for log, user in rows]

    def find_by_tracking_id(self, tracking_id: str) -> dict[str, Any] | None:
        """Map a tracking id recovered from leaked file metadata back to the access."""
        row = (
            self.db.query(ImageAccessLog, User)
            .outerjoin(User, User.id == ImageAccessLog.user_id)
            .filter(ImageAccessLog.tracking_id == tracking_id)
            .first()
        )
        if row is None:
            return None
        return self._as_dict(*row)

    def suspicious_activity(
        self,
        min_access_count: int = 50,
        window_minutes: int = 60,
        action: str = "view",
        now: datetime | None = None,
    ) -> list[SuspiciousUser]:
        """Users with at least min_access_count accesses of one kind in the last window."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=window_minutes)
        rows = (
            self.db.query(ImageAccessLog.user_id, ImageAccessLog.image_id, ImageAccessLog.created_at)
            .filter(ImageAccessLog.created_at >= cutoff, ImageAccessLog.action == action)
            .all()
        )
        grouped: dict[str, list] = {}
        for user_id, image_id, created_at in rows:
            grouped.setdefault(user_id, []).append((image_id, created_at))

        result = []
        for user_id, accesses in grouped.items():
            if len(accesses) < min_access_count:
                continue
            times = [t for _, t in accesses]
            result.append(
                SuspiciousUser(
                    user_id=user_id,
                    access_count=len(accesses),
                    distinct_images=len({i for i, _ in accesses}),
                    first_access=min(times),
                    last_access=max(times),
                )
            )
        result.sort(key=lambda s: s.access_count, reverse=True)
        return result

    def user_set_history(self, user_id: str, set_id: str) -> list[dict[str, Any]]:
        """Member's accesses within one content set, newest first."""
        rows = (
            self.db.query(ImageAccessLog)
            .filter(ImageAccessLog.user_id == user_id, ImageAccessLog.set_id == set_id)
            .order_by(ImageAccessLog.created_at.desc())
            .all()
        )
        return [self._as_dict(r, None) for r in rows]

    def erase_user_records(self, user_id: str) -> int:
        """Remove all records tied to user_id (data erasure request only)."""
        deleted = (
            self.db.query(ImageAccessLog)
            .filter(ImageAccessLog.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info("forensic_records_erased", extra={"user_id": user_id, "count": deleted})
        return deleted

    @staticmethod
    def _as_dict(log: ImageAccessLog, user: User | None) -> dict[str, Any]:
        data = {
            "id": log.id,
            "user_id": log.user_id,
            "image_id": log.image_id,
            "set_id": log.set_id,
            "action": log.action,
            "ip_address": log.ip_address,
            "user_agent": log.user_agent,
            "user_tier": log.user_tier,
            "referer": log.referer,
            "tracking_id": log.tracking_id,
            "timestamp": log.created_at.isoformat() if log.created_at else None,
        }
        if user is not None:
            data["user"] = {
                "email": user.email,
                "name": user.name,
                "membership_tier": user.membership_tier,
                "patreon_user_id": user.patreon_user_id,
            }
        return data
