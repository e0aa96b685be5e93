"""
Font resources for text rasterization.

A RenderContext is built once at startup and handed to every PixelCanvas,
so text drawing never depends on hidden global font state. Tests can build
a RenderContext around any FontSource.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

# Checked in order; the first existing file wins
SYSTEM_FONT_PATHS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
)


@dataclass(frozen=True)
class Glyph:
    """
    A rasterized glyph.

    Attributes:
        bitmap: Row-major 8-bit coverage values, width * height bytes
        width: Bitmap width in pixels
        height: Bitmap height in pixels
        left: Horizontal offset of the bitmap from the pen position
        top: Vertical offset of the bitmap from the top of the text line
        advance: Horizontal pen advance after this glyph
    """

    bitmap: bytes
    width: int
    height: int
    left: int
    top: int
    advance: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


class FontSource(ABC):
    """Produces glyph bitmaps for a character at a pixel size."""

    @abstractmethod
    def glyph(self, char: str, size: float) -> Glyph:
        pass


class PillowFontSource(FontSource):
    """
    Glyph rasterizer backed by Pillow's FreeType bindings.

    Args:
        font_path: TrueType/OpenType file, or None for Pillow's embedded font
    """

    def __init__(self, font_path: Optional[str] = None):
        self.font_path = font_path
        self.font_cache: Dict[int, ImageFont.ImageFont] = {}
        self.glyph_cache: Dict[Tuple[str, int], Glyph] = {}

    def glyph(self, char: str, size: float) -> Glyph:
        pixel_size = max(1, int(round(size)))
        cache_key = (char, pixel_size)
        cached = self.glyph_cache.get(cache_key)
        if cached is not None:
            return cached

        font = self._load_font(pixel_size)
        left, top, right, bottom = font.getbbox(char)
        width, height = right - left, bottom - top
        advance = float(font.getlength(char))

        if width <= 0 or height <= 0:
            glyph = Glyph(b"", 0, 0, 0, 0, advance)
        else:
            mask = Image.new("L", (width, height), 0)
            ImageDraw.Draw(mask).text((-left, -top), char, font=font, fill=255)
            glyph = Glyph(mask.tobytes(), width, height, left, top, advance)

        self.glyph_cache[cache_key] = glyph
        return glyph

    def _load_font(self, pixel_size: int):
        """Load a font with caching"""
        if pixel_size in self.font_cache:
            return self.font_cache[pixel_size]

        font = None
        if self.font_path:
            try:
                font = ImageFont.truetype(self.font_path, pixel_size)
            except OSError as e:
                logger.warning(f"Failed to load font from path '{self.font_path}': {e}")

        if font is None:
            try:
                font = ImageFont.load_default(size=pixel_size)
            except (TypeError, ImportError):
                # Pillow builds without FreeType only ship the fixed-size bitmap font
                font = ImageFont.load_default()

        self.font_cache[pixel_size] = font
        return font

    def __repr__(self) -> str:
        return f"<PillowFontSource(path={self.font_path or 'embedded'})>"


def find_system_font(candidates: Iterable[str] = SYSTEM_FONT_PATHS) -> Optional[str]:
    """
    Return the first font file from candidates that exists on disk.

    Args:
        candidates: Ordered font file paths

    Returns:
        Path to the font file, or None if none exist
    """
    for path in candidates:
        expanded = os.path.expanduser(path)
        if os.path.isfile(expanded):
            return expanded
    return None


class RenderContext:
    """
    Rendering resources shared by every frame.

    Attributes:
        font_source: FontSource used for all text drawing
    """

    def __init__(self, font_source: FontSource):
        self.font_source = font_source

    @classmethod
    def from_system(cls, candidates: Iterable[str] = SYSTEM_FONT_PATHS) -> "RenderContext":
        """
        Build a context around the first available system font.

        Falls back to Pillow's embedded font when no candidate exists.
        """
        font_path = find_system_font(candidates)
        if font_path:
            logger.info(f"Using system font: {font_path}")
        else:
            logger.warning("No system font found, using embedded font")
        return cls(PillowFontSource(font_path))

    def glyph(self, char: str, size: float) -> Glyph:
        return self.font_source.glyph(char, size)

    def measure_text(self, text: str, size: float) -> float:
        """Total pen advance of text at size."""
        return sum(self.glyph(char, size).advance for char in text)
