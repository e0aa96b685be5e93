"""
Utility modules for Notch.
"""

from .errors import (
    CanvasError,
    ConfigurationError,
    ModuleError,
    NotchError,
    PluginLoadError,
    error_boundary,
    safe_execute,
)

__all__ = [
    "NotchError",
    "ConfigurationError",
    "PluginLoadError",
    "ModuleError",
    "CanvasError",
    "error_boundary",
    "safe_execute",
]
