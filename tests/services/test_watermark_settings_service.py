"""WatermarkSettingsService: defaults and upsert."""
import pytest
from pydantic import ValidationError

from app.models.watermark_settings import WatermarkSettings
from app.schemas.watermark import WatermarkPosition, WatermarkSettingsIn, WatermarkType
from app.services.watermark_settings.settings_service import DEFAULTS, WatermarkSettingsService
from fakes import make_session


def _service():
    return WatermarkSettingsService(make_session(WatermarkSettings))


class TestWatermarkSettingsService:
    def test_defaults_when_never_saved(self):
        svc = _service()
        data = svc.as_dict("creator")
        assert data["updated_at"] is None
        assert {k: data[k] for k in DEFAULTS} == DEFAULTS
        spec = svc.get_spec("creator")
        assert spec.type == WatermarkType.TEXT
        assert spec.position == WatermarkPosition.CORNER
        assert spec.enabled is True

    def test_update_creates_then_overwrites(self):
        svc = _service()
        svc.update(
            "creator",
            WatermarkSettingsIn(watermark_type="text", position="center", opacity=0.5, scale=2.0),
        )
        saved = svc.update(
            "creator",
            WatermarkSettingsIn(
                watermark_type="image",
                position="custom",
                opacity=0.3,
                offset_x=12.34,
                offset_y=-7.0,
                badge_object_key="badges/logo.png",
            ),
        )
        assert svc.db.query(WatermarkSettings).count() == 1
        assert saved["position"] == "custom"
        assert saved["offset_x"] == 12.3
        assert saved["badge_object_key"] == "badges/logo.png"
        assert saved["updated_at"]
        spec = svc.get_spec("creator")
        assert spec.type == WatermarkType.IMAGE
        assert spec.opacity == 0.3

    def test_disable(self):
        svc = _service()
        svc.update("creator", WatermarkSettingsIn(watermark_type="text", position="corner", opacity=0.2, enabled=False))
        assert svc.get_spec("creator").enabled is False

    def test_out_of_range_rejected_before_service(self):
        with pytest.raises(ValidationError):
            WatermarkSettingsIn(watermark_type="text", position="corner", opacity=0.2, scale=20)
