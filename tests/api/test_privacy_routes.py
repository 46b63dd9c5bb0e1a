"""Member privacy route: erasure of the caller's own records is queued."""
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from app.main import app
from app.services.auth.jwt import create_access_token

MEMBER = {"Authorization": f"Bearer {create_access_token('fan', tier='bronze')}"}


class TestPrivacyDelete:
    def test_member_queues_own_erasure(self):
        with patch("app.workers.tasks.delete_user_data.delete_user_data") as task:
            task.delay.return_value = MagicMock(id="task-1")
            r = TestClient(app).post("/privacy/delete", headers=MEMBER)
        assert r.status_code == 202
        assert r.json() == {"queued": True, "task_id": "task-1"}
        task.delay.assert_called_once_with("fan")

    def test_body_cannot_target_another_user(self):
        with patch("app.workers.tasks.delete_user_data.delete_user_data") as task:
            r = TestClient(app).post("/privacy/delete", headers=MEMBER, json={"user_id": "someone-else"})
        assert r.status_code == 202
        task.delay.assert_called_once_with("fan")

    def test_anonymous_is_unauthorized(self):
        with patch("app.workers.tasks.delete_user_data.delete_user_data") as task:
            r = TestClient(app).post("/privacy/delete")
        assert r.status_code == 401
        task.delay.assert_not_called()
