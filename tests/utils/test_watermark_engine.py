"""Watermark engine: determinism, positions, opacity, graceful fallback."""
import unittest
from unittest.mock import patch

from app.schemas.watermark import WatermarkPosition, WatermarkSpec, WatermarkType
from app.utils import watermark as engine
from app.utils.bitmap_font import render_block_text
from fakes import make_image_bytes, open_image


def _spec(**kwargs):
    base = {"type": WatermarkType.TEXT, "position": WatermarkPosition.CORNER, "opacity": 1.0, "scale": 1.0}
    base.update(kwargs)
    return WatermarkSpec(**base)


def _changed_bbox(before: bytes, after: bytes):
    a = open_image(before).convert("RGB")
    b = open_image(after).convert("RGB")
    from PIL import ImageChops

    return ImageChops.difference(a, b).getbbox()


class TestRenderWatermark(unittest.TestCase):
    def test_render_is_deterministic(self):
        spec = _spec()
        first = engine.render_watermark(spec, "ID: 1A2B3C4D")
        second = engine.render_watermark(spec, "ID: 1A2B3C4D")
        self.assertEqual(first, second)

    def test_different_text_differs(self):
        spec = _spec()
        self.assertNotEqual(
            engine.render_watermark(spec, "ID: 1A2B3C4D"),
            engine.render_watermark(spec, "ID: FFFFFFFF"),
        )

    def test_font_failure_falls_back_to_block_renderer(self):
        with patch.object(engine, "load_font", return_value=None):
            data = engine.render_watermark(_spec(), "ID: 1A2B3C4D")
            again = engine.render_watermark(_spec(), "ID: 1A2B3C4D")
        overlay = open_image(data)
        self.assertEqual(overlay.mode, "RGBA")
        self.assertEqual(overlay.size, render_block_text("ID: 1A2B3C4D").size)
        self.assertEqual(data, again)

    def test_unreadable_badge_falls_back_to_text(self):
        spec = _spec(type=WatermarkType.IMAGE, badge_object_key="badges/logo.png")
        data = engine.render_watermark(spec, "BRAND", badge=b"not an image")
        self.assertEqual(open_image(data).mode, "RGBA")

    def test_badge_is_used_when_readable(self):
        badge = make_image_bytes(size=(40, 20), color=(255, 0, 0))
        spec = _spec(type=WatermarkType.IMAGE, badge_object_key="badges/logo.png")
        overlay = open_image(engine.render_watermark(spec, "BRAND", badge=badge))
        self.assertEqual(overlay.size, (40, 20))


class TestComposite(unittest.TestCase):
    def setUp(self):
        self.base = make_image_bytes(size=(400, 300), color=(30, 30, 30))

    def _composite(self, spec, text="ID: 1A2B3C4D"):
        return engine.composite(self.base, engine.render_watermark(spec, text), spec)

    def test_composite_is_deterministic(self):
        for position in WatermarkPosition:
            spec = _spec(position=position, opacity=0.5)
            self.assertEqual(self._composite(spec), self._composite(spec), position)

    def test_keeps_size_and_format(self):
        out = open_image(self._composite(_spec()))
        self.assertEqual(out.size, (400, 300))
        self.assertEqual(out.format, "PNG")

        jpeg_base = make_image_bytes(size=(400, 300), fmt="JPEG")
        spec = _spec()
        result = engine.composite(jpeg_base, engine.render_watermark(spec, "X"), spec)
        self.assertEqual(open_image(result).format, "JPEG")

    def test_corner_marks_top_left(self):
        bbox = _changed_bbox(self.base, self._composite(_spec(position=WatermarkPosition.CORNER)))
        self.assertIsNotNone(bbox)
        left, top, right, bottom = bbox
        self.assertGreaterEqual(left, engine.MARGIN - 2)
        self.assertLess(right, 400 // 2 + 50)
        self.assertLess(bottom, 300 // 2)

    def test_custom_offset_moves_overlay(self):
        right_low = _changed_bbox(
            self.base, self._composite(_spec(position=WatermarkPosition.CUSTOM, offset_x=30, offset_y=30))
        )
        left_high = _changed_bbox(
            self.base, self._composite(_spec(position=WatermarkPosition.CUSTOM, offset_x=-30, offset_y=-30))
        )
        self.assertGreater(right_low[0], left_high[0])
        self.assertGreater(right_low[1], left_high[1])

    def test_custom_offsets_beyond_range_stay_inside_image(self):
        spec = _spec(position=WatermarkPosition.CUSTOM, offset_x=500, offset_y=-500)
        bbox = _changed_bbox(self.base, self._composite(spec))
        self.assertIsNotNone(bbox)
        self.assertLessEqual(bbox[2], 400)
        self.assertGreaterEqual(bbox[1], 0)

    def test_diagonal_covers_whole_image(self):
        bbox = _changed_bbox(self.base, self._composite(_spec(position=WatermarkPosition.DIAGONAL)))
        self.assertIsNotNone(bbox)
        left, top, right, bottom = bbox
        self.assertLess(left, 100)
        self.assertGreater(right, 300)
        self.assertLess(top, 100)
        self.assertGreater(bottom, 200)

    def test_zero_opacity_leaves_pixels_untouched(self):
        out = self._composite(_spec(opacity=0.0))
        self.assertIsNone(_changed_bbox(self.base, out))

    def test_disabled_spec_returns_input(self):
        spec = _spec(enabled=False)
        self.assertEqual(engine.composite(self.base, engine.render_watermark(spec, "X"), spec), self.base)

    def test_larger_scale_marks_more_pixels(self):
        small = _changed_bbox(self.base, self._composite(_spec(position=WatermarkPosition.CENTER, scale=1.0)))
        large = _changed_bbox(self.base, self._composite(_spec(position=WatermarkPosition.CENTER, scale=3.0)))
        self.assertGreater(large[2] - large[0], small[2] - small[0])

    def test_undecodable_base_raises(self):
        spec = _spec()
        with self.assertRaises(engine.WatermarkError):
            engine.composite(b"garbage", engine.render_watermark(spec, "X"), spec)


class TestBlockText(unittest.TestCase):
    def test_unknown_characters_render(self):
        img = render_block_text("ID: ©?")
        self.assertEqual(img.mode, "RGBA")
        self.assertGreater(img.size[0], img.size[1])
