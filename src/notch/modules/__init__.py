"""
Module system for the notch.

Modules are self-contained widgets (clock, plugins loaded from files, ...)
that draw into the rectangle the layout assigns them and may react to
pointer and update events.

This package provides the base module interface and the built-in modules,
which ModuleTypeRegistry discovers automatically.
"""

from .base import (
    BaseModule,
    Enter,
    Leave,
    ModuleEvent,
    Motion,
    Press,
    Rect,
    Release,
    Update,
    UpdateCollapsed,
    UpdateExpanded,
)

__all__ = [
    "BaseModule",
    "Rect",
    "ModuleEvent",
    "Enter",
    "Leave",
    "Motion",
    "Press",
    "Release",
    "Update",
    "UpdateExpanded",
    "UpdateCollapsed",
]
