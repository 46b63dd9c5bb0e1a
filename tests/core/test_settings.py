"""Settings validation."""
import pytest
from pydantic import ValidationError

from app.core.config import Settings

REQUIRED = {
    "database_url": "sqlite://",
    "redis_url": "redis://localhost:6379/0",
    "celery_broker_url": "memory://",
    "celery_result_backend": "cache+memory://",
    "jwt_secret_key": "k",
}


def _settings(**overrides):
    return Settings(**{**REQUIRED, **overrides})


class TestSettings:
    def test_defaults_are_consistent(self):
        s = _settings()
        assert s.signed_url_ttl_seconds == 900
        assert s.signed_url_cache_ttl_seconds <= s.signed_url_ttl_seconds - s.signed_url_cache_safety_margin_seconds

    def test_cache_ttl_must_leave_margin(self):
        with pytest.raises(ValidationError):
            _settings(signed_url_ttl_seconds=120, signed_url_cache_ttl_seconds=100)

    def test_margin_at_least_a_minute(self):
        with pytest.raises(ValidationError):
            _settings(signed_url_cache_safety_margin_seconds=30)

    def test_storage_backend(self):
        assert _settings(storage_backend=" LOCAL ").storage_backend == "local"
        with pytest.raises(ValidationError):
            _settings(storage_backend="gcs")

    def test_id_watermark_position(self):
        with pytest.raises(ValidationError):
            _settings(id_watermark_position="top-left")

    def test_trusted_proxy_ips(self):
        assert _settings(trusted_proxy_ips="10.0.0.1, 10.0.0.2,").trusted_proxy_ips_set == {"10.0.0.1", "10.0.0.2"}
