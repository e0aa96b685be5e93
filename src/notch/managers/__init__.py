"""
Managers for the notch.

- ModuleRegistry: Module lifecycle, layout, drawing and event routing
- ModuleTypeRegistry: Built-in module classes
"""

from .module import ModuleEntry, ModuleRegistry, ModuleTypeRegistry

__all__ = [
    "ModuleEntry",
    "ModuleRegistry",
    "ModuleTypeRegistry",
]
