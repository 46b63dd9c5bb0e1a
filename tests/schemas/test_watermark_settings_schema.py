"""WatermarkSettingsIn: the only place watermark ranges are enforced."""
import pytest
from pydantic import ValidationError

from app.schemas.watermark import WatermarkPosition, WatermarkSettingsIn, WatermarkType


def _payload(**overrides):
    data = {
        "watermark_type": "text",
        "position": "custom",
        "opacity": 0.4,
        "scale": 1.0,
        "offset_x": 0,
        "offset_y": 0,
    }
    data.update(overrides)
    return data


class TestOffsets:
    @pytest.mark.parametrize("field,value", [("offset_x", 50.01), ("offset_x", -51), ("offset_y", 120), ("offset_y", -50.5)])
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ValidationError):
            WatermarkSettingsIn(**_payload(**{field: value}))

    def test_rounded_to_one_decimal(self):
        s = WatermarkSettingsIn(**_payload(offset_x=12.345, offset_y=-7.06))
        assert s.offset_x == 12.3
        assert s.offset_y == -7.1

    def test_bounds_inclusive(self):
        s = WatermarkSettingsIn(**_payload(offset_x=-50, offset_y=50))
        assert (s.offset_x, s.offset_y) == (-50.0, 50.0)


class TestScaleAndOpacity:
    @pytest.mark.parametrize("scale", [0.05, 0, 10.5, -1])
    def test_scale_out_of_range(self, scale):
        with pytest.raises(ValidationError):
            WatermarkSettingsIn(**_payload(scale=scale))

    @pytest.mark.parametrize("scale", [0.1, 1, 10])
    def test_scale_in_range(self, scale):
        assert WatermarkSettingsIn(**_payload(scale=scale)).scale == scale

    @pytest.mark.parametrize("opacity", [-0.1, 1.5])
    def test_opacity_out_of_range(self, opacity):
        with pytest.raises(ValidationError):
            WatermarkSettingsIn(**_payload(opacity=opacity))


class TestTypeAndPosition:
    def test_unknown_position_rejected(self):
        with pytest.raises(ValidationError):
            WatermarkSettingsIn(**_payload(position="bottom-left"))

    def test_image_requires_badge(self):
        with pytest.raises(ValidationError):
            WatermarkSettingsIn(**_payload(watermark_type="image"))

    def test_text_drops_badge(self):
        s = WatermarkSettingsIn(**_payload(badge_object_key="badges/a.png"))
        assert s.badge_object_key is None

    def test_to_spec(self):
        s = WatermarkSettingsIn(**_payload(watermark_type="image", badge_object_key="badges/a.png", offset_x=10.26))
        spec = s.to_spec()
        assert spec.type is WatermarkType.IMAGE
        assert spec.position is WatermarkPosition.CUSTOM
        assert spec.offset_x == 10.3
        assert spec.badge_object_key == "badges/a.png"
