"""
Software rendering into raw ARGB8888 pixel buffers.

Buffers are flat, row-major, 4 bytes per pixel in memory order B, G, R, A
(little-endian ARGB8888). Colors are 4-tuples in the same byte order and
are written verbatim by the fill operations.
"""

import logging
from typing import Any, Optional, Tuple

from PIL import Image

from notch.modules.base import Rect
from notch.utils.errors import CanvasError

from .fonts import RenderContext

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int, int]

BYTES_PER_PIXEL = 4
TRANSPARENT: Color = (0, 0, 0, 0)


def parse_color(value: Any) -> Color:
    """
    Convert a configured color to buffer byte order.

    Accepts "#RRGGBB" / "#RRGGBBAA" hex strings (alpha defaults to FF) or a
    sequence of four 0-255 integers, which is taken verbatim in buffer order.

    Raises:
        ValueError: If the value is not a recognizable color
    """
    if isinstance(value, str):
        hex_str = value.lstrip("#")
        if len(hex_str) == 6:
            hex_str += "FF"
        if len(hex_str) != 8:
            raise ValueError(f"Invalid hex color: {value!r}")
        try:
            red, green, blue, alpha = (int(hex_str[i:i + 2], 16) for i in range(0, 8, 2))
        except ValueError:
            raise ValueError(f"Invalid hex color: {value!r}")
        return (blue, green, red, alpha)

    if isinstance(value, (list, tuple)) and len(value) == 4:
        if all(isinstance(c, int) and not isinstance(c, bool) and 0 <= c <= 255 for c in value):
            return tuple(value)

    raise ValueError(f"Color must be a hex string or four 0-255 integers, got {value!r}")


def _check_buffer(buffer, width: int, height: int) -> None:
    if width < 0 or height < 0:
        raise CanvasError(f"Invalid canvas size {width}x{height}")
    required = width * height * BYTES_PER_PIXEL
    if len(buffer) < required:
        raise CanvasError(
            f"Buffer too small for {width}x{height} canvas: "
            f"{len(buffer)} bytes (need {required})"
        )


def fill_canvas_with_rounded_corners(
    buffer,
    width: int,
    height: int,
    expanded: bool,
    corner_radius: int,
    color: Color,
) -> None:
    """
    Fill the whole buffer with color, rounding the bottom corners when expanded.

    Pixels in the bottom corner_radius rows whose squared distance to the
    corner's rounding centre is greater than corner_radius**2 become fully
    transparent. A pixel exactly on the circle stays opaque. Collapsed
    notches and a zero radius always get a plain rectangle.

    Args:
        buffer: Writable ARGB8888 buffer of at least width * height * 4 bytes
        width: Canvas width in pixels
        height: Canvas height in pixels
        expanded: Whether the notch is expanded
        corner_radius: Radius of the bottom corners in pixels
        color: Fill color in buffer byte order
    """
    _check_buffer(buffer, width, height)
    pixel = bytes(color)
    row = pixel * width
    stride = width * BYTES_PER_PIXEL

    for y in range(height):
        buffer[y * stride:(y + 1) * stride] = row

    if not expanded or corner_radius <= 0:
        return

    radius = corner_radius
    radius_sq = radius * radius
    clear = bytes(TRANSPARENT)

    for y in range(max(0, height - radius), height):
        dy = y - (height - radius)
        for x in range(width):
            if x < radius:
                dx = radius - x
            elif x >= width - radius:
                dx = x - (width - radius)
            else:
                continue
            if dx * dx + dy * dy > radius_sq:
                idx = (y * width + x) * BYTES_PER_PIXEL
                buffer[idx:idx + BYTES_PER_PIXEL] = clear


class PixelCanvas:
    """
    Bounds-checked drawing surface over a caller-owned pixel buffer.

    The canvas borrows the buffer for one frame. Use it as a context manager
    (or call release()) so no view of the buffer outlives the draw call.

    Attributes:
        width: Canvas width in pixels
        height: Canvas height in pixels
        context: RenderContext used for text, or None for a canvas without text
    """

    def __init__(self, buffer, width: int, height: int, context: Optional[RenderContext] = None):
        _check_buffer(buffer, width, height)
        self._buffer = memoryview(buffer)
        self.width = width
        self.height = height
        self.context = context

    def __enter__(self) -> "PixelCanvas":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def release(self) -> None:
        """Drop the view of the caller's buffer."""
        if self._buffer is not None:
            self._buffer.release()
            self._buffer = None

    @property
    def buffer(self) -> memoryview:
        if self._buffer is None:
            raise CanvasError("Canvas has been released")
        return self._buffer

    @property
    def bounds(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def get_pixel(self, x: int, y: int) -> Color:
        """Read one pixel in buffer byte order."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} canvas")
        idx = (y * self.width + x) * BYTES_PER_PIXEL
        return tuple(self.buffer[idx:idx + BYTES_PER_PIXEL])

    def fill_background(self, color: Color, expanded: bool, corner_radius: int) -> None:
        fill_canvas_with_rounded_corners(
            self.buffer, self.width, self.height, expanded, corner_radius, color
        )

    def fill_rect(self, x: int, y: int, width: int, height: int, color: Color) -> None:
        """Fill a rectangle with color, clipped to the canvas. No blending."""
        x_start = max(x, 0)
        y_start = max(y, 0)
        x_end = min(x + width, self.width)
        y_end = min(y + height, self.height)

        if x_end <= x_start or y_end <= y_start:
            return

        buffer = self.buffer
        span = bytes(color) * (x_end - x_start)
        for row in range(y_start, y_end):
            start = (row * self.width + x_start) * BYTES_PER_PIXEL
            buffer[start:start + len(span)] = span

    def draw_text(
        self,
        x: int,
        y: int,
        text: str,
        color: Color,
        size: float,
        clip: Optional[Rect] = None,
    ) -> float:
        """
        Rasterize text with its line top-left at (x, y).

        Glyph coverage is blended over the existing pixels, so text can sit
        on top of semi-transparent backgrounds.

        Args:
            x: Pen start position
            y: Top of the text line
            text: Text to draw
            color: Text color in buffer byte order
            size: Pixel size
            clip: Optional rectangle to confine drawing to (e.g. the module area)

        Returns:
            Total horizontal advance of the text

        Raises:
            CanvasError: If the canvas has no RenderContext
        """
        if self.context is None:
            raise CanvasError("Canvas has no render context for text drawing")

        region = self.bounds if clip is None else self.bounds.intersection(clip)
        pen_x = float(x)

        for char in text:
            glyph = self.context.glyph(char, size)
            if not glyph.is_empty and region is not None:
                self._blend_glyph(int(round(pen_x)) + glyph.left, y + glyph.top, glyph, color, region)
            pen_x += glyph.advance

        return pen_x - x

    def measure_text(self, text: str, size: float) -> float:
        if self.context is None:
            raise CanvasError("Canvas has no render context for text measurement")
        return self.context.measure_text(text, size)

    def _blend_glyph(self, origin_x: int, origin_y: int, glyph, color: Color, region: Rect) -> None:
        buffer = self.buffer
        color_alpha = color[3] / 255.0

        col_start = max(0, region.x - origin_x)
        col_end = min(glyph.width, region.right - origin_x)
        row_start = max(0, region.y - origin_y)
        row_end = min(glyph.height, region.bottom - origin_y)

        for row in range(row_start, row_end):
            py = origin_y + row
            line = row * glyph.width
            for col in range(col_start, col_end):
                coverage = glyph.bitmap[line + col]
                if coverage == 0:
                    continue
                alpha = coverage / 255.0
                idx = (py * self.width + origin_x + col) * BYTES_PER_PIXEL

                for channel in range(3):
                    existing = buffer[idx + channel]
                    blended = existing * (1.0 - alpha) + color[channel] * alpha
                    buffer[idx + channel] = min(255, max(0, int(round(blended))))

                existing_alpha = buffer[idx + 3] / 255.0
                new_alpha = existing_alpha + color_alpha * alpha * (1.0 - existing_alpha)
                buffer[idx + 3] = min(255, max(0, int(round(new_alpha * 255.0))))

    def to_image(self) -> Image.Image:
        """Copy the canvas into an RGBA Pillow image."""
        size = self.width * self.height * BYTES_PER_PIXEL
        return Image.frombuffer(
            "RGBA", (self.width, self.height), bytes(self.buffer[:size]), "raw", "BGRA", 0, 1
        )
