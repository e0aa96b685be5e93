"""
Configuration loading and typed configuration objects.
"""

from .loader import ConfigLoader, get_config_path
from .models import (
    LayoutConfig,
    LayoutRow,
    LayoutState,
    ModuleStateConfig,
    ModuleStateConfigSet,
    ModulesConfig,
    NotchConfig,
    NotchStyle,
    NotchStyleResolved,
)

__all__ = [
    "ConfigLoader",
    "get_config_path",
    "LayoutConfig",
    "LayoutRow",
    "LayoutState",
    "ModuleStateConfig",
    "ModuleStateConfigSet",
    "ModulesConfig",
    "NotchConfig",
    "NotchStyle",
    "NotchStyleResolved",
]
