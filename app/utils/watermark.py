"""
Watermark engine: render an overlay (identifying text or a creator badge) and composite
it onto an image according to a WatermarkSpec.

render_watermark(spec, text, badge) -> PNG bytes of the overlay alone.
composite(base, overlay, spec) -> encoded image in the base image's format.

Output is deterministic for identical inputs. Missing fonts or unreadable badges fall
back to the font-free block renderer instead of failing.
"""
import io
import logging
import math
import os
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFilter, ImageFont, UnidentifiedImageError

from app.core.config import settings
from app.schemas.watermark import WatermarkPosition, WatermarkSpec, WatermarkType
from app.utils.bitmap_font import render_block_text
from app.utils.metrics import watermark_renders_total

logger = logging.getLogger(__name__)

# Text is rendered once at this size and resampled to the target in composite()
BASE_FONT_SIZE = 48
MARGIN = 20
# Badge width at scale 1.0, as a share of the base image width
BADGE_WIDTH_RATIO = 0.15
# Text height at scale 1.0, as a share of min(width, height)
TEXT_HEIGHT_RATIO = 0.04
MIN_TEXT_HEIGHT = 14
DIAGONAL_ANGLE = 30
OFFSET_LIMIT = 50.0

_FONT_PATHS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
)


class WatermarkError(ValueError):
    """Base image cannot be decoded."""


@lru_cache(maxsize=8)
def load_font(size: int, font_path: str | None = None) -> ImageFont.FreeTypeFont | None:
    """TrueType font of the given size; None when no font file can be loaded."""
    candidates = [p for p in (font_path, settings.watermark_font_path) if p] + list(_FONT_PATHS)
    for path in candidates:
        if os.path.exists(path):
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return None


def render_watermark(spec: WatermarkSpec, identifying_text: str, badge: bytes | None = None) -> bytes:
    """Render the overlay for spec as PNG bytes (RGBA, unscaled, full opacity)."""
    overlay = render_overlay(spec, identifying_text, badge)
    return _encode_png(overlay)


def render_overlay(spec: WatermarkSpec, identifying_text: str, badge: bytes | None = None) -> Image.Image:
    if spec.type == WatermarkType.IMAGE:
        if badge:
            try:
                img = Image.open(io.BytesIO(badge))
                img.load()
                watermark_renders_total.labels(kind="image", renderer="badge").inc()
                return img.convert("RGBA")
            except (UnidentifiedImageError, OSError, ValueError) as e:
                logger.warning("watermark_badge_unreadable", extra={"renderer": "text", "error": str(e)})
        else:
            logger.warning("watermark_badge_missing", extra={"renderer": "text"})

    font = load_font(BASE_FONT_SIZE)
    if font is None:
        logger.warning("watermark_font_unavailable", extra={"renderer": "fallback"})
        watermark_renders_total.labels(kind=spec.type.value, renderer="fallback").inc()
        return render_block_text(identifying_text)

    watermark_renders_total.labels(kind=spec.type.value, renderer="truetype").inc()
    return _render_text(identifying_text, font)


def _render_text(text: str, font: ImageFont.FreeTypeFont) -> Image.Image:
    """White text with a soft black drop shadow on a transparent canvas."""
    left, top, right, bottom = font.getbbox(text or " ")
    pad = 8
    shadow = max(2, BASE_FONT_SIZE // 24)
    width = (right - left) + pad * 2 + shadow
    height = (bottom - top) + pad * 2 + shadow
    origin = (pad - left, pad - top)

    shadow_layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(shadow_layer).text(
        (origin[0] + shadow, origin[1] + shadow), text, font=font, fill=(0, 0, 0, 170)
    )
    shadow_layer = shadow_layer.filter(ImageFilter.GaussianBlur(radius=1))

    text_layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(text_layer).text(origin, text, font=font, fill=(255, 255, 255, 255))
    return Image.alpha_composite(shadow_layer, text_layer)


def composite(base_image: bytes, watermark: bytes, spec: WatermarkSpec) -> bytes:
    """
    Scale and fade the overlay, place it by spec.position and return the merged image
    encoded in the base format. Disabled specs return base_image untouched.
    """
    if not spec.enabled:
        return base_image
    try:
        base = Image.open(io.BytesIO(base_image))
        base.load()
    except (UnidentifiedImageError, OSError) as e:
        raise WatermarkError("base image cannot be decoded") from e
    overlay = Image.open(io.BytesIO(watermark)).convert("RGBA")

    fmt = base.format or "PNG"
    canvas = base.convert("RGBA")
    width, height = canvas.size

    overlay = _scale_overlay(overlay, (width, height), spec)
    overlay = _apply_opacity(overlay, spec.opacity)

    if spec.position == WatermarkPosition.DIAGONAL:
        layer = _tile_diagonal(overlay, (width, height))
    else:
        layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        layer.alpha_composite(overlay, dest=_place(overlay.size, (width, height), spec))

    merged = Image.alpha_composite(canvas, layer)
    return encode_image(merged, fmt)


def _scale_overlay(overlay: Image.Image, base_size: tuple[int, int], spec: WatermarkSpec) -> Image.Image:
    width, height = base_size
    ow, oh = overlay.size
    if spec.type == WatermarkType.IMAGE:
        target_w = max(1, math.floor(width * BADGE_WIDTH_RATIO * spec.scale))
        target_h = max(1, math.floor(target_w / ow * oh))
    else:
        target_h = max(MIN_TEXT_HEIGHT, math.floor(min(width, height) * TEXT_HEIGHT_RATIO * spec.scale))
        target_w = max(1, math.floor(target_h / oh * ow))

    if spec.position != WatermarkPosition.DIAGONAL and (target_w > width or target_h > height):
        fit = min(width / target_w, height / target_h)
        target_w = max(1, math.floor(target_w * fit))
        target_h = max(1, math.floor(target_h * fit))

    if (target_w, target_h) == (ow, oh):
        return overlay
    return overlay.resize((target_w, target_h), Image.Resampling.LANCZOS)


def _apply_opacity(overlay: Image.Image, opacity: float) -> Image.Image:
    opacity = min(1.0, max(0.0, opacity))
    if opacity >= 1.0:
        return overlay
    faded = overlay.copy()
    alpha = faded.getchannel("A").point(lambda a: int(round(a * opacity)))
    faded.putalpha(alpha)
    return faded


def _clamp_offset(value: float) -> float:
    return min(OFFSET_LIMIT, max(-OFFSET_LIMIT, value))


def _place(overlay_size: tuple[int, int], base_size: tuple[int, int], spec: WatermarkSpec) -> tuple[int, int]:
    """Top-left pixel of the overlay, kept inside the image."""
    ow, oh = overlay_size
    width, height = base_size

    if spec.position == WatermarkPosition.CORNER:
        x, y = MARGIN, MARGIN
    elif spec.position == WatermarkPosition.CENTER:
        x, y = (width - ow) // 2, (height - oh) // 2
    else:
        ox = _clamp_offset(spec.offset_x)
        oy = _clamp_offset(spec.offset_y)
        x = math.floor(width / 2 + width * ox / 100 - ow / 2)
        y = math.floor(height / 2 + height * oy / 100 - oh / 2)

    x = max(0, min(x, width - ow))
    y = max(0, min(y, height - oh))
    return x, y


def _tile_diagonal(overlay: Image.Image, base_size: tuple[int, int]) -> Image.Image:
    """Repeat the overlay in a brick pattern over a rotated canvas covering the image."""
    width, height = base_size
    ow, oh = overlay.size
    diag = math.ceil(math.hypot(width, height))
    side = diag + max(ow, oh) * 2
    step_x = ow + max(40, ow // 2)
    step_y = oh + max(40, oh * 2)

    tiles = Image.new("RGBA", (side, side), (0, 0, 0, 0))
    row = 0
    y = 0
    while y + oh <= side:
        # odd rows shifted by half a step; the canvas is oversized so edges never show
        x = step_x // 2 if row % 2 else 0
        while x + ow <= side:
            tiles.alpha_composite(overlay, dest=(x, y))
            x += step_x
        y += step_y
        row += 1

    tiles = tiles.rotate(DIAGONAL_ANGLE, resample=Image.Resampling.BICUBIC, expand=False)
    cx, cy = side // 2, side // 2
    box = (cx - width // 2, cy - height // 2, cx - width // 2 + width, cy - height // 2 + height)
    return tiles.crop(box)


def encode_image(img: Image.Image, fmt: str, exif: bytes | None = None, pnginfo=None) -> bytes:
    """Encode RGBA result back into fmt (JPEG drops alpha)."""
    buf = io.BytesIO()
    fmt = (fmt or "PNG").upper()
    extra = {}
    if exif:
        extra["exif"] = exif
    if fmt in ("JPEG", "JPG", "MPO"):
        img.convert("RGB").save(buf, "JPEG", quality=settings.jpeg_quality, **extra)
    elif fmt == "WEBP":
        img.save(buf, "WEBP", quality=settings.jpeg_quality, **extra)
    else:
        if pnginfo is not None:
            extra["pnginfo"] = pnginfo
        img.save(buf, "PNG", **extra)
    return buf.getvalue()


def _encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, "PNG")
    return buf.getvalue()
