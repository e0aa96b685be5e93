"""
Clock module for displaying the current time in the notch.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Tuple

from notch.render.canvas import parse_color

from .base import BaseModule, Rect, Update, UpdateExpanded

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%H:%M:%S"


class ClockModule(BaseModule):
    """
    Display the current time with a configurable strftime format.

    Configuration:
        format: strftime format string (default "%H:%M:%S")
        font_size: Text size in pixels (default 16, capped at 80% of the area height)
        color: Text color, hex string or [b, g, r, a] (default white)
        background_color: Fill behind the text (default fully transparent)

    Example:
        modules:
          module_configs:
            clock:
              format: "%H:%M"
              font_size: 18
              color: "#FFFFFF"
    """

    module_id = "clock"
    name = "Clock"

    # Horizontal inset of the text from the area's left edge
    TEXT_INSET = 10

    def __init__(self, now: Callable[[], datetime] = datetime.now):
        super().__init__()
        self._now = now
        self.color = (255, 255, 255, 255)
        self.background_color = (0, 0, 0, 0)
        self.format = DEFAULT_FORMAT
        self.font_size = 16.0
        self._text = self.render_text(self._now())

    def init(self, config: Dict[str, Any]) -> None:
        if "color" in config:
            self.color = parse_color(config["color"])
        if "background_color" in config:
            self.background_color = parse_color(config["background_color"])
        if "format" in config:
            if not isinstance(config["format"], str):
                raise ValueError(f"Clock format must be a string, got {config['format']!r}")
            self.format = config["format"]
        if "font_size" in config:
            self.font_size = float(config["font_size"])

        self._text = self.render_text(self._now())
        logger.debug(f"Clock configured with format '{self.format}', size {self.font_size}")

    def render_text(self, data: datetime) -> str:
        """Format date/time as text."""
        if data is None:
            return "---"
        try:
            return data.strftime(self.format)
        except ValueError as e:
            logger.error(f"Invalid datetime format '{self.format}': {e}")
            return data.strftime(DEFAULT_FORMAT)

    def draw(self, canvas, area: Rect) -> None:
        if self.background_color[3] > 0:
            canvas.fill_rect(area.x, area.y, area.width, area.height, self.background_color)

        font_size = min(self.font_size, area.height * 0.8)
        y_pos = area.y + int((area.height - font_size) / 2)
        canvas.draw_text(area.x + self.TEXT_INSET, y_pos, self._text, self.color, font_size, clip=area)

    def handle_event(self, event, area: Rect) -> bool:
        # Ticks refresh the text but stay unconsumed so other modules see them too
        if isinstance(event, (Update, UpdateExpanded)):
            self._text = self.render_text(self._now())
        return False

    def preferred_size(self) -> Tuple[int, int]:
        return (100, 30)
