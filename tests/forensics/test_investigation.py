"""ForensicInvestigationService against in-memory SQLite."""
from datetime import datetime, timedelta, timezone

from app.forensics.investigation import ForensicInvestigationService
from app.forensics.models import ForensicEvent
from app.models.image_access_log import ImageAccessLog
from app.models.user import User
from app.workers.tasks import forensic_log
from fakes import make_session

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _event(user="u1", image="img1", minutes=0, action="view", set_id="s1", tracking=None):
    return ForensicEvent(
        user_id=user,
        image_id=image,
        set_id=set_id,
        action=action,
        user_tier="bronze",
        tracking_id=tracking,
        timestamp=T0 + timedelta(minutes=minutes),
    )


def _service():
    db = make_session(User, ImageAccessLog)
    return ForensicInvestigationService(db), db


class TestInvestigate:
    def test_ascending_order_regardless_of_insert_order(self):
        svc, _ = _service()
        for m in (30, 0, 10, 20):
            svc.record(_event(minutes=m))
        svc.record(_event(image="other", minutes=5))
        records = svc.investigate("img1")
        assert len(records) == 4
        stamps = [r["timestamp"] for r in records]
        assert stamps == sorted(stamps)

    def test_time_range(self):
        svc, _ = _service()
        for m in (0, 10, 20, 30):
            svc.record(_event(minutes=m))
        records = svc.investigate("img1", T0 + timedelta(minutes=5), T0 + timedelta(minutes=25))
        assert len(records) == 2

    def test_includes_user_details(self):
        svc, db = _service()
        db.add(User(id="u1", email="fan@example.com", name="Fan", membership_tier="bronze", patreon_user_id="p1"))
        db.commit()
        svc.record(_event())
        record = svc.investigate("img1")[0]
        assert record["user"]["email"] == "fan@example.com"
        assert record["user"]["patreon_user_id"] == "p1"

    def test_find_by_tracking_id(self):
        svc, _ = _service()
        svc.record(_event(user="leaker", tracking="abcdabcdabcdabcd", action="download"))
        found = svc.find_by_tracking_id("abcdabcdabcdabcd")
        assert found["user_id"] == "leaker"
        assert svc.find_by_tracking_id("nope") is None


class TestSuspiciousActivity:
    def test_flags_heavy_users_in_window(self):
        svc, _ = _service()
        for i in range(5):
            svc.record(_event(user="heavy", image=f"img{i}", minutes=i))
        svc.record(_event(user="light", minutes=1))
        svc.record(_event(user="heavy", minutes=2, action="download"))
        found = svc.suspicious_activity(min_access_count=5, window_minutes=60, now=T0 + timedelta(minutes=10))
        assert [s.user_id for s in found] == ["heavy"]
        assert found[0].access_count == 5
        assert found[0].distinct_images == 5

    def test_window_excludes_old_records(self):
        svc, _ = _service()
        for i in range(5):
            svc.record(_event(user="heavy", minutes=i))
        found = svc.suspicious_activity(min_access_count=5, window_minutes=60, now=T0 + timedelta(hours=3))
        assert found == []


class TestHistoryAndErasure:
    def test_user_set_history_newest_first(self):
        svc, _ = _service()
        svc.record(_event(minutes=0))
        svc.record(_event(minutes=5))
        svc.record(_event(minutes=3, set_id="other"))
        history = svc.user_set_history("u1", "s1")
        assert len(history) == 2
        assert history[0]["timestamp"] > history[1]["timestamp"]

    def test_erase_removes_only_that_user(self):
        svc, db = _service()
        svc.record(_event(user="gone"))
        svc.record(_event(user="gone", minutes=1))
        svc.record(_event(user="stays"))
        assert svc.erase_user_records("gone") == 2
        assert db.query(ImageAccessLog).count() == 1


class TestWorkerTask:
    def test_record_image_access_writes_row(self, monkeypatch):
        svc, db = _service()
        db.close = lambda: None
        monkeypatch.setattr(forensic_log, "SessionLocal", lambda: db)
        result = forensic_log.record_image_access.run(_event(tracking="t" * 16).model_dump(mode="json"))
        assert result == {"ok": True}
        assert db.query(ImageAccessLog).filter(ImageAccessLog.tracking_id == "t" * 16).count() == 1

    def test_invalid_payload_is_counted_not_raised(self, monkeypatch):
        svc, db = _service()
        db.close = lambda: None
        monkeypatch.setattr(forensic_log, "SessionLocal", lambda: db)
        result = forensic_log.record_image_access.run({"user_id": "u1"})
        assert result["ok"] is False
