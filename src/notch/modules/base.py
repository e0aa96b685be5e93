"""
Base classes for all notch modules.

Every module, built into this package or loaded from a plugin file,
inherits from BaseModule. The interface is also the plugin contract, so it
stays small.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from notch.render.canvas import PixelCanvas

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned pixel rectangle in canvas-local coordinates."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Rect size must be non-negative, got {self.width}x{self.height}")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        """Half-open hit test: left/top edges are inside, right/bottom are not."""
        return self.x <= x < self.right and self.y <= y < self.bottom

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """Overlapping part of both rectangles, or None if they don't overlap."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rect(left, top, right - left, bottom - top)


class ModuleEvent:
    """Base class for events delivered to modules."""

    # Positional events are hit-tested; the rest are broadcast
    positional = False


@dataclass(frozen=True)
class Enter(ModuleEvent):
    """Pointer entered the notch."""

    x: float
    y: float
    positional = True


@dataclass(frozen=True)
class Leave(ModuleEvent):
    """Pointer left the notch."""


@dataclass(frozen=True)
class Motion(ModuleEvent):
    """Pointer moved."""

    x: float
    y: float
    positional = True


@dataclass(frozen=True)
class Press(ModuleEvent):
    """Pointer button pressed."""

    button: int
    x: float
    y: float
    positional = True


@dataclass(frozen=True)
class Release(ModuleEvent):
    """Pointer button released."""

    button: int
    x: float
    y: float
    positional = True


@dataclass(frozen=True)
class Update(ModuleEvent):
    """Periodic tick (e.g. once per second for the clock)."""


@dataclass(frozen=True)
class UpdateExpanded(ModuleEvent):
    """The notch has just expanded."""


@dataclass(frozen=True)
class UpdateCollapsed(ModuleEvent):
    """The notch has just collapsed."""


class BaseModule(ABC):
    """
    Base class for all notch modules.

    Class Attributes:
        module_id: Unique key used for configuration, layout references and
                   area lookup (e.g., "clock")
        name: Human-readable name (defaults to the class name)

    Example:
        >>> class BatteryModule(BaseModule):
        ...     module_id = "battery"
        ...     name = "Battery"
        ...
        ...     def draw(self, canvas, area):
        ...         canvas.fill_rect(area.x, area.y, area.width, area.height, (0, 255, 0, 255))
        ...
        ...     def preferred_size(self):
        ...         return (40, 20)
    """

    # Module identifier (must be unique within a registry)
    module_id: str = None

    name: str = None

    def __init__(self):
        """
        Raises:
            ValueError: If module_id is not defined
        """
        if not self.module_id:
            raise ValueError(f"{self.__class__.__name__} must define module_id")
        if not self.name:
            self.name = self.__class__.__name__

    def init(self, config: Dict[str, Any]) -> None:
        """
        Apply this module's configuration table.

        Called once after the module is registered, with an empty dict when
        the configuration has no entry for this module. Raise to report a
        problem; the registry logs it and keeps the module with its defaults.
        """
        pass

    @abstractmethod
    def draw(self, canvas: "PixelCanvas", area: Rect) -> None:
        """
        Render into area on canvas.

        Args:
            canvas: Canvas for the current frame (do not keep a reference)
            area: Rectangle assigned by the layout; drawing must stay inside it
        """
        pass

    def handle_event(self, event: ModuleEvent, area: Rect) -> bool:
        """
        Handle an event.

        Returns:
            True if the event was consumed and should not propagate further
        """
        return False

    @abstractmethod
    def preferred_size(self) -> Tuple[int, int]:
        """Return the desired (width, height) in pixels."""
        pass

    def shutdown(self) -> None:
        """Release resources before the registry drops this module."""
        pass

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<{self.__class__.__name__}(id={self.module_id}, name={self.name})>"
