"""
Font-free text renderer: 5x7 glyphs drawn as rectangles on a dark box.
Last resort when no TrueType font can be loaded.
"""
from PIL import Image, ImageDraw

GLYPHS: dict[str, tuple[str, ...]] = {
    "0": ("01110", "10001", "10011", "10101", "11001", "10001", "01110"),
    "1": ("00100", "01100", "00100", "00100", "00100", "00100", "01110"),
    "2": ("01110", "10001", "00001", "00110", "01000", "10000", "11111"),
    "3": ("11110", "00001", "00001", "01110", "00001", "00001", "11110"),
    "4": ("00010", "00110", "01010", "10010", "11111", "00010", "00010"),
    "5": ("11111", "10000", "11110", "00001", "00001", "10001", "01110"),
    "6": ("00110", "01000", "10000", "11110", "10001", "10001", "01110"),
    "7": ("11111", "00001", "00010", "00100", "01000", "01000", "01000"),
    "8": ("01110", "10001", "10001", "01110", "10001", "10001", "01110"),
    "9": ("01110", "10001", "10001", "01111", "00001", "00010", "01100"),
    "A": ("01110", "10001", "10001", "11111", "10001", "10001", "10001"),
    "B": ("11110", "10001", "10001", "11110", "10001", "10001", "11110"),
    "C": ("01110", "10001", "10000", "10000", "10000", "10001", "01110"),
    "D": ("11100", "10010", "10001", "10001", "10001", "10010", "11100"),
    "E": ("11111", "10000", "10000", "11110", "10000", "10000", "11111"),
    "F": ("11111", "10000", "10000", "11110", "10000", "10000", "10000"),
    "I": ("01110", "00100", "00100", "00100", "00100", "00100", "01110"),
    ":": ("00000", "01100", "01100", "00000", "01100", "01100", "00000"),
    "-": ("00000", "00000", "00000", "11111", "00000", "00000", "00000"),
    " ": ("00000", "00000", "00000", "00000", "00000", "00000", "00000"),
}
# Unknown characters render as a hollow box
_UNKNOWN = ("11111", "10001", "10001", "10001", "10001", "10001", "11111")

GLYPH_COLS = 5
GLYPH_ROWS = 7


def render_block_text(text: str, cell: int = 4, padding: int = 8) -> Image.Image:
    """RGBA image of text on a translucent dark box, with a 1-cell drop shadow."""
    text = text.upper() or " "
    advance = (GLYPH_COLS + 1) * cell
    width = len(text) * advance - cell + padding * 2 + cell
    height = GLYPH_ROWS * cell + padding * 2 + cell

    img = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.rectangle((0, 0, width - 1, height - 1), fill=(0, 0, 0, 110))

    for layer_offset, color in ((cell // 2 or 1, (0, 0, 0, 200)), (0, (255, 255, 255, 255))):
        for i, ch in enumerate(text):
            rows = GLYPHS.get(ch, _UNKNOWN)
            x0 = padding + i * advance + layer_offset
            for r, bits in enumerate(rows):
                y = padding + r * cell + layer_offset
                for c, bit in enumerate(bits):
                    if bit == "1":
                        x = x0 + c * cell
                        draw.rectangle((x, y, x + cell - 1, y + cell - 1), fill=color)
    return img
