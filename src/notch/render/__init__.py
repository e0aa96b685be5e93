"""
CPU rendering: pixel canvas and font resources.
"""

from .canvas import (
    BYTES_PER_PIXEL,
    PixelCanvas,
    fill_canvas_with_rounded_corners,
    parse_color,
)
from .fonts import FontSource, Glyph, PillowFontSource, RenderContext

__all__ = [
    "BYTES_PER_PIXEL",
    "PixelCanvas",
    "fill_canvas_with_rounded_corners",
    "parse_color",
    "FontSource",
    "Glyph",
    "PillowFontSource",
    "RenderContext",
]
