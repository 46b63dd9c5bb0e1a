"""Cron hooks and health probes."""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.db.session import get_db
from app.main import app
from app.models.content_set import ContentSet
from fakes import make_session


@pytest.fixture
def client(monkeypatch):
    db = make_session(ContentSet)
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    db.add(ContentSet(id="due", slug="due", title="Due", scheduled_time=past))
    db.commit()
    monkeypatch.setattr(settings, "cron_secret", "s3cret")
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestPublishScheduled:
    def test_requires_secret(self, client):
        assert client.post("/cron/publish-scheduled").status_code == 401
        assert client.post("/cron/publish-scheduled", headers={"X-Cron-Secret": "wrong"}).status_code == 401

    def test_publishes(self, client):
        r = client.post("/cron/publish-scheduled", headers={"X-Cron-Secret": "s3cret"})
        assert r.status_code == 200
        assert r.json() == {"published": ["due"], "count": 1}
        r = client.post("/cron/publish-scheduled", headers={"X-Cron-Secret": "s3cret"})
        assert r.json()["count"] == 0


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_metrics_exposed(client):
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "image_requests_total" in r.text
