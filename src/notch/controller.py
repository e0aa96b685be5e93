"""
Main controller for one notch surface.
"""

import logging
import time
from typing import Callable, Optional

from .config.models import NotchConfig, NotchStyleResolved
from .managers.module import ModuleRegistry
from .modules.base import Enter, Leave, ModuleEvent, Update, UpdateCollapsed, UpdateExpanded
from .modules.clock import ClockModule
from .render.canvas import BYTES_PER_PIXEL, PixelCanvas
from .render.fonts import RenderContext

logger = logging.getLogger(__name__)

# Frames requested sooner than this after the previous one are skipped (~60 fps)
MIN_FRAME_INTERVAL = 0.016


class NotchController:
    """
    Application state for a notch: configuration, modules and expansion state.

    The controller does no windowing. Callers feed it pointer events and
    ticks, and commit the buffers returned by draw() to their surface.

    Not thread-safe; a host with several threads must serialize all calls.
    """

    def __init__(
        self,
        config: NotchConfig,
        registry: Optional[ModuleRegistry] = None,
        render_context: Optional[RenderContext] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the controller and load the configured modules.

        Args:
            config: Notch configuration
            registry: Module registry (a new one is created when omitted)
            render_context: Fonts for text drawing (system font lookup when omitted)
            clock: Monotonic time source used for the redraw cap
        """
        self.config: NotchConfig = config
        self.registry: ModuleRegistry = registry if registry is not None else ModuleRegistry()
        self.render_context: RenderContext = (
            render_context if render_context is not None else RenderContext.from_system()
        )
        self.expanded: bool = False
        self._clock = clock
        self._last_draw: Optional[float] = None

        self.registry.load_modules_from_config(config)

        if not self.registry.has_modules():
            logger.info("No modules configured, adding default clock module")
            self.registry.add_module(ClockModule())

        self.registry.calculate_layout(self.config, self.expanded)

    @property
    def style(self) -> NotchStyleResolved:
        return self.config.style_for(self.expanded)

    @property
    def width(self) -> int:
        return self.style.width

    @property
    def height(self) -> int:
        return self.style.height

    def resize(self, expand: bool) -> None:
        """Switch between collapsed and expanded state."""
        if self.expanded == expand:
            return

        self.expanded = expand
        style = self.style
        state = "expanding" if expand else "collapsing"
        logger.info(f"Notch {state} to {style.width}x{style.height}")

        self.registry.calculate_layout(self.config, self.expanded)
        self.registry.handle_event(UpdateExpanded() if expand else UpdateCollapsed())

    def reload(self, config: NotchConfig) -> None:
        """Apply a new configuration: re-resolve modules and recompute the layout."""
        self.config = config
        self.registry.load_modules_from_config(config)
        self.registry.calculate_layout(self.config, self.expanded)
        logger.info(f"Configuration reloaded, modules: {self.registry.module_ids()}")

    def draw(self, force: bool = False) -> Optional[bytearray]:
        """
        Render a frame.

        Args:
            force: Ignore the redraw cap

        Returns:
            ARGB8888 buffer of width * height * 4 bytes, or None if the frame
            was skipped or its buffer could not be allocated
        """
        now = self._clock()
        if not force and self._last_draw is not None and now - self._last_draw < MIN_FRAME_INTERVAL:
            return None
        self._last_draw = now

        style = self.style
        try:
            buffer = bytearray(style.width * style.height * BYTES_PER_PIXEL)
        except MemoryError as e:
            logger.error(f"Failed to allocate {style.width}x{style.height} frame buffer: {e}")
            return None

        with PixelCanvas(buffer, style.width, style.height, self.render_context) as canvas:
            canvas.fill_background(style.background_color, self.expanded, style.corner_radius)
            self.registry.draw(canvas, self.expanded)

        return buffer

    def handle_pointer_event(self, event: ModuleEvent) -> bool:
        """
        Handle a pointer event in surface coordinates.

        Entering the notch expands it and leaving collapses it; the event is
        then passed on to the modules.

        Returns:
            True if a module handled the event
        """
        if isinstance(event, Enter):
            logger.info("Expanding notch due to pointer enter")
            self.resize(True)
        elif isinstance(event, Leave):
            logger.info("Collapsing notch due to pointer leave")
            self.resize(False)

        return self.registry.handle_event(event)

    def update_modules(self) -> bool:
        """Send the periodic update tick to all modules."""
        return self.registry.handle_event(Update())

    def shutdown(self) -> None:
        """Dispose every module and unload plugins."""
        logger.info("Shutting down notch controller")
        self.registry.clear()
