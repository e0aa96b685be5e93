"""
Loading notch modules from plugin files.

A plugin is a Python source file or compiled extension module that exposes
a module-level ``create_module()`` function. It takes no arguments and
returns a new BaseModule instance, which the loader takes ownership of:

    # ~/.config/notch/plugins/hello.py
    from notch.modules import BaseModule

    class HelloModule(BaseModule):
        module_id = "hello"

        def draw(self, canvas, area):
            canvas.draw_text(area.x, area.y, "hello", (255, 255, 255, 255), 14, clip=area)

        def preferred_size(self):
            return (60, 20)

    def create_module():
        return HelloModule()

Everything that touches the imported plugin code object lives in this file.
The rest of the package only ever sees LoadedPlugin.
"""

import importlib.machinery
import importlib.util
import itertools
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Optional

from notch.modules.base import BaseModule
from notch.utils.errors import PluginLoadError

logger = logging.getLogger(__name__)

# Name of the constructor every plugin must export
PLUGIN_ENTRY_POINT = "create_module"

# Prefix of the private sys.modules names plugins are imported under
PLUGIN_NAMESPACE = "notch_plugin"

_plugin_counter = itertools.count(1)


class LoadedPlugin:
    """
    A module instance together with the plugin code that implements it.

    The handle stays referenced for as long as the module is, and close()
    always drops the module before releasing the handle.

    Attributes:
        path: Plugin file the module was loaded from
    """

    def __init__(self, module: BaseModule, handle: ModuleType, path: Path):
        self._module: Optional[BaseModule] = module
        self._handle: Optional[ModuleType] = handle
        self.path = path

    @property
    def module(self) -> BaseModule:
        if self._module is None:
            raise PluginLoadError(f"Plugin {self.path} has been unloaded")
        return self._module

    @property
    def closed(self) -> bool:
        return self._module is None

    def close(self) -> None:
        """Shut the module down, then release the plugin code."""
        if self._module is None:
            return

        module, self._module = self._module, None
        try:
            module.shutdown()
        except Exception as e:
            logger.error(f"Error shutting down plugin module {module.module_id}: {e}", exc_info=True)
        del module

        handle, self._handle = self._handle, None
        if handle is not None and sys.modules.get(handle.__name__) is handle:
            del sys.modules[handle.__name__]
        logger.debug(f"Unloaded plugin {self.path}")

    def __repr__(self) -> str:
        state = "closed" if self.closed else self._module.module_id
        return f"<LoadedPlugin(path={self.path}, module={state})>"


def _import_name(path: Path) -> str:
    # Extension modules must be imported under the name their init function was built for
    if any(path.name.endswith(suffix) for suffix in importlib.machinery.EXTENSION_SUFFIXES):
        return path.name.split(".", 1)[0]
    return f"{PLUGIN_NAMESPACE}_{next(_plugin_counter)}_{path.stem}"


def load_plugin(path: str) -> LoadedPlugin:
    """
    Import a plugin file and construct its module.

    Args:
        path: Path to the plugin file (``~`` is expanded)

    Returns:
        LoadedPlugin owning the new module

    Raises:
        PluginLoadError: If the file is missing or cannot be imported, has no
            entry point, or the entry point fails or returns something that
            is not a BaseModule, or an extension module would replace one
            that is already imported
    """
    resolved = Path(path).expanduser()
    if not resolved.is_file():
        raise PluginLoadError(f"Plugin file not found: {resolved}")

    name = _import_name(resolved)
    if name in sys.modules:
        raise PluginLoadError(f"Plugin {resolved} would shadow already imported module '{name}'")

    spec = importlib.util.spec_from_file_location(name, resolved)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Unsupported plugin file type: {resolved}")

    handle = importlib.util.module_from_spec(spec)
    sys.modules[name] = handle

    def discard() -> None:
        if sys.modules.get(name) is handle:
            del sys.modules[name]

    try:
        spec.loader.exec_module(handle)
    except Exception as e:
        discard()
        raise PluginLoadError(f"Failed to import plugin {resolved}: {e}") from e

    factory = getattr(handle, PLUGIN_ENTRY_POINT, None)
    if not callable(factory):
        discard()
        raise PluginLoadError(f"Plugin {resolved} does not define {PLUGIN_ENTRY_POINT}()")

    try:
        module = factory()
    except Exception as e:
        discard()
        raise PluginLoadError(f"{PLUGIN_ENTRY_POINT}() in {resolved} failed: {e}") from e

    if not isinstance(module, BaseModule):
        discard()
        raise PluginLoadError(
            f"{PLUGIN_ENTRY_POINT}() in {resolved} returned {type(module).__name__}, "
            f"expected a BaseModule"
        )

    logger.info(f"Loaded plugin module '{module.module_id}' from {resolved}")
    return LoadedPlugin(module, handle, resolved)
