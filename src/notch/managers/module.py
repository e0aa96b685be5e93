"""
Module management for the notch.

This module owns the live set of modules: it resolves the enabled list from
configuration into built-in or plugin modules, initializes them, keeps the
area map produced by the layout engine, draws modules into their areas and
routes events to them.
"""

import logging
from typing import Any, Dict, List, Optional

from notch.config.models import NotchConfig
from notch.layout import ModuleLayout, calculate_module_layout
from notch.modules.base import BaseModule, ModuleEvent, Rect
from notch.plugins import LoadedPlugin, load_plugin
from notch.utils.errors import ModuleError, PluginLoadError, error_boundary, safe_execute

logger = logging.getLogger(__name__)

# Legacy way of naming a plugin file directly in the enabled list
EXTERNAL_PREFIX = "external:"


class ModuleEntry:
    """
    A registered module.

    Attributes:
        key: Entry from the enabled list this module was resolved from
        module: The module instance
        plugin: Owning plugin wrapper for modules loaded from files
    """

    def __init__(self, key: str, module: BaseModule, plugin: Optional[LoadedPlugin] = None):
        self.key = key
        self.module = module
        self.plugin = plugin

    def dispose(self) -> None:
        """Drop the module; plugin code is released only after the module is gone."""
        module, self.module = self.module, None
        if self.plugin is not None:
            del module
            self.plugin.close()
            self.plugin = None
        elif module is not None:
            safe_execute(module.shutdown, description=f"shutdown of module {module.module_id}")

    def __repr__(self) -> str:
        return f"<ModuleEntry(key={self.key}, module={self.module!r})>"


class ModuleRegistry:
    """
    Owns and orchestrates all loaded modules.

    Responsibilities:
    - Resolving enabled ids to built-in or plugin modules
    - Module initialization with per-module configuration
    - Layout (area map) bookkeeping
    - Drawing modules with per-module failure isolation
    - Hit-testing and broadcasting events

    Not thread-safe; callers must serialize access.
    """

    def __init__(self, type_registry: Optional["ModuleTypeRegistry"] = None):
        """
        Initialize an empty registry.

        Args:
            type_registry: Built-in module types; auto-discovered when omitted
        """
        if type_registry is None:
            type_registry = ModuleTypeRegistry()
            type_registry.auto_discover()
        self.type_registry = type_registry
        self._entries: List[ModuleEntry] = []
        self._layout: Optional[ModuleLayout] = None

    @property
    def modules(self) -> List[BaseModule]:
        """Registered modules in registration order."""
        return [entry.module for entry in self._entries]

    @property
    def module_areas(self) -> Dict[str, Rect]:
        """Copy of the current area map."""
        if self._layout is None:
            return {}
        return dict(self._layout.areas)

    @property
    def layout(self) -> Optional[ModuleLayout]:
        return self._layout

    def add_module(
        self, module: BaseModule, key: Optional[str] = None, plugin: Optional[LoadedPlugin] = None
    ) -> None:
        """
        Register a module.

        Args:
            module: Module instance (the registry takes ownership)
            key: Enabled-list entry it came from (defaults to its module_id)
            plugin: Plugin wrapper when the module was loaded from a file
        """
        logger.info(f"Adding module: {module.name}")
        self._entries.append(ModuleEntry(key or module.module_id, module, plugin))

    def has_modules(self) -> bool:
        return len(self._entries) > 0

    def module_ids(self) -> List[str]:
        return [entry.module.module_id for entry in self._entries]

    def get_module(self, module_id: str) -> Optional[BaseModule]:
        for entry in self._entries:
            if entry.module.module_id == module_id:
                return entry.module
        return None

    def remove_module(self, key: str) -> bool:
        """
        Unregister and dispose the module resolved from key.

        Its area is dropped from the map; the other areas keep their
        positions until the next calculate_layout().
        """
        for entry in list(self._entries):
            if entry.key == key:
                self._entries.remove(entry)
                logger.info(f"Removing module: {entry.module.name}")
                entry.dispose()
                self._prune_layout()
                return True
        return False

    def _prune_layout(self) -> None:
        """Drop areas of ids that are no longer loaded, replacing the map in one step."""
        layout = self._layout
        if layout is None:
            return
        loaded = set(self.module_ids())
        if set(layout.areas) <= loaded:
            return
        areas = {module_id: area for module_id, area in layout.areas.items() if module_id in loaded}
        self._layout = ModuleLayout(areas, layout.width, layout.height, layout.expanded)

    def clear(self) -> None:
        """Dispose every module and forget the area map."""
        entries, self._entries = self._entries, []
        for entry in entries:
            entry.dispose()
        self._layout = None
        logger.debug("Cleared all modules")

    def load_modules_from_config(self, config: NotchConfig) -> None:
        """
        Bring the registered modules in line with config.modules.enabled.

        Modules no longer enabled are disposed. Missing ones are resolved as
        an alias to a plugin file, a legacy "external:<path>" entry, or a
        built-in module type. Ids that can't be resolved or loaded are logged
        and skipped. Every module then gets init() with its configuration
        table.
        """
        enabled = config.modules.enabled

        for entry in list(self._entries):
            if entry.key not in enabled:
                self.remove_module(entry.key)

        loaded_keys = {entry.key for entry in self._entries}
        for key in enabled:
            if key in loaded_keys:
                continue
            entry = self._resolve(key, config)
            if entry is not None:
                self.add_module(entry.module, entry.key, entry.plugin)
                loaded_keys.add(key)

        for entry in self._entries:
            module = entry.module
            self._init_module(module, config.modules.module_configs.get(module.module_id) or {})

    @error_boundary(default_return=False, log_level=logging.WARNING)
    def _init_module(self, module: BaseModule, module_config: Dict[str, Any]) -> bool:
        try:
            module.init(module_config)
        except Exception as e:
            raise ModuleError(f"Failed to initialize module {module.module_id}: {e}") from e
        return True

    def _resolve(self, key: str, config: NotchConfig) -> Optional[ModuleEntry]:
        alias_path = config.modules.aliases.get(key)
        if alias_path is not None:
            return self._load_external_module(key, alias_path)

        if key.startswith(EXTERNAL_PREFIX):
            return self._load_external_module(key, key[len(EXTERNAL_PREFIX):])

        module_class = self.type_registry.get_module_class(key)
        if module_class is None:
            logger.warning(f"Unknown module: {key}")
            return None

        try:
            return ModuleEntry(key, module_class())
        except Exception as e:
            logger.error(f"Failed to create built-in module {key}: {e}", exc_info=True)
            return None

    def _load_external_module(self, key: str, path: str) -> Optional[ModuleEntry]:
        try:
            plugin = load_plugin(path)
        except PluginLoadError as e:
            logger.warning(f"Failed to load external module {key}: {e}")
            return None
        return ModuleEntry(key, plugin.module, plugin)

    def calculate_layout(self, config: NotchConfig, expanded: bool) -> ModuleLayout:
        """
        Recompute the area map for the given expansion state.

        The new map replaces the old one in a single assignment.
        """
        layout = calculate_module_layout(config, self.modules, expanded)
        self._layout = layout
        return layout

    def _layout_matches(self, canvas, expanded: Optional[bool]) -> bool:
        layout = self._layout
        if layout is None:
            return False
        if (layout.width, layout.height) != (canvas.width, canvas.height):
            logger.warning(
                f"Layout computed for {layout.width}x{layout.height} but canvas is "
                f"{canvas.width}x{canvas.height}; skipping module drawing"
            )
            return False
        if expanded is not None and layout.expanded != expanded:
            logger.warning("Layout computed for a different expansion state; skipping module drawing")
            return False
        return True

    def draw(self, canvas, expanded: Optional[bool] = None) -> None:
        """
        Draw every module that has an area, in registration order.

        A module that raises is logged and the remaining modules still draw.

        Args:
            canvas: PixelCanvas for this frame
            expanded: Expansion state of the frame; when given, the area map
                must have been computed for the same state
        """
        if not self._layout_matches(canvas, expanded):
            return

        areas = self._layout.areas
        for entry in list(self._entries):
            module = entry.module
            area = areas.get(module.module_id)
            if area is None:
                continue
            try:
                module.draw(canvas, area)
            except Exception as e:
                logger.error(f"Error drawing module {module.name}: {e}", exc_info=True)

    def handle_event(self, event: ModuleEvent) -> bool:
        """
        Send an event to the appropriate module(s).

        Positional events go to the first module (registration order) whose
        area contains the point, and only to that module, whether or not it
        handles the event. Other events are broadcast to every module with
        an area until one reports it handled.

        Returns:
            True if a module handled the event
        """
        logger.debug(f"ModuleRegistry.handle_event: received event {event}")
        if self._layout is None:
            return False

        areas = self._layout.areas
        if event.positional:
            for entry in list(self._entries):
                area = areas.get(entry.module.module_id)
                if area is not None and area.contains(event.x, event.y):
                    return self._deliver(entry.module, event, area)
            return False

        for entry in list(self._entries):
            area = areas.get(entry.module.module_id)
            if area is not None and self._deliver(entry.module, event, area):
                return True
        return False

    def _deliver(self, module: BaseModule, event: ModuleEvent, area: Rect) -> bool:
        handled = safe_execute(
            lambda: module.handle_event(event, area),
            default=False,
            description=f"event handler of module {module.module_id}",
        )
        return bool(handled)


class ModuleTypeRegistry:
    """
    Registry of built-in module classes, keyed by module_id.

    auto_discover() scans the notch.modules package for BaseModule subclasses.
    """

    def __init__(self):
        """Initialize empty registry."""
        self._modules: Dict[str, type] = {}

    def register(self, module_class: type) -> None:
        """
        Register a module class.

        Raises:
            TypeError: If module_class doesn't inherit from BaseModule
            ValueError: If module_id is not defined
        """
        if not isinstance(module_class, type) or not issubclass(module_class, BaseModule):
            raise TypeError(f"{module_class} must inherit from BaseModule")

        module_id = module_class.module_id
        if not module_id:
            raise ValueError(f"{module_class.__name__} must define module_id class attribute")

        if module_id in self._modules:
            logger.warning(f"Overwriting existing module type: {module_id}")

        self._modules[module_id] = module_class
        logger.debug(f"Registered module type: {module_id}")

    def get_module_class(self, module_id: str) -> Optional[type]:
        return self._modules.get(module_id)

    def list_modules(self) -> List[str]:
        return list(self._modules.keys())

    def auto_discover(self) -> None:
        """Auto-discover and register all built-in module classes."""
        import importlib
        import pkgutil

        import notch.modules as modules_pkg

        for _importer, modname, _ispkg in pkgutil.iter_modules(modules_pkg.__path__):
            if modname in ["base", "__init__"]:
                continue

            try:
                module = importlib.import_module(f"notch.modules.{modname}")

                for attr_name in dir(module):
                    attr = getattr(module, attr_name)
                    if (
                        isinstance(attr, type)
                        and issubclass(attr, BaseModule)
                        and attr is not BaseModule
                        and attr.__module__ == module.__name__
                        and attr.module_id
                    ):
                        self.register(attr)
                        logger.info(f"Auto-registered module: {attr.module_id}")

            except Exception as e:
                logger.error(f"Failed to load module package {modname}: {e}")
