"""
Typed configuration objects for the notch.

These are built from the plain dictionaries produced by ConfigLoader (or by
any other caller) and are what the registry, layout engine and controller
consume.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from notch.render.canvas import Color, parse_color
from notch.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 300
DEFAULT_HEIGHT = 40
DEFAULT_CORNER_RADIUS = 10
DEFAULT_BACKGROUND_COLOR: Color = (0, 0, 0, 255)

ALIGNMENTS = ("left", "center", "right")


def _section(data: Dict[str, Any], key: str, where: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{where}{key}' must be a dictionary")
    return value


def _optional_int(data: Dict[str, Any], key: str, where: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"'{where}{key}' must be a non-negative integer, got {value!r}")
    return value


def _optional_color(data: Dict[str, Any], key: str, where: str) -> Optional[Color]:
    value = data.get(key)
    if value is None:
        return None
    try:
        return parse_color(value)
    except ValueError as e:
        raise ConfigurationError(f"'{where}{key}': {e}")


def _optional_alignment(data: Dict[str, Any], where: str) -> Optional[str]:
    value = data.get("alignment")
    if value is None:
        return None
    if value not in ALIGNMENTS:
        raise ConfigurationError(
            f"'{where}alignment' must be one of {', '.join(ALIGNMENTS)}, got {value!r}"
        )
    return value


@dataclass
class NotchStyle:
    """Style properties; unset fields fall back to the main style, then defaults."""

    width: Optional[int] = None
    height: Optional[int] = None
    corner_radius: Optional[int] = None
    background_color: Optional[Color] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], where: str = "") -> "NotchStyle":
        return cls(
            width=_optional_int(data, "width", where),
            height=_optional_int(data, "height", where),
            corner_radius=_optional_int(data, "corner_radius", where),
            background_color=_optional_color(data, "background_color", where),
        )


@dataclass(frozen=True)
class NotchStyleResolved:
    """Style with every field filled in."""

    width: int
    height: int
    corner_radius: int
    background_color: Color

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass
class ModuleStateConfig:
    """Per-module overrides for one expansion state."""

    visible: Optional[bool] = None
    alignment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], where: str) -> "ModuleStateConfig":
        visible = data.get("visible")
        if visible is not None and not isinstance(visible, bool):
            raise ConfigurationError(f"'{where}visible' must be true or false, got {visible!r}")
        return cls(visible=visible, alignment=_optional_alignment(data, where))


@dataclass
class ModuleStateConfigSet:
    expanded: ModuleStateConfig = field(default_factory=ModuleStateConfig)
    collapsed: ModuleStateConfig = field(default_factory=ModuleStateConfig)

    def for_state(self, expanded: bool) -> ModuleStateConfig:
        return self.expanded if expanded else self.collapsed


@dataclass
class ModulesConfig:
    """
    Which modules to load and how to configure them.

    Attributes:
        enabled: Module ids in registration order
        module_configs: Per-id configuration tables passed to BaseModule.init()
        state: Per-id visibility/alignment overrides per expansion state
        aliases: Logical module id -> plugin file path
    """

    enabled: List[str] = field(default_factory=list)
    module_configs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    state: Dict[str, ModuleStateConfigSet] = field(default_factory=dict)
    aliases: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModulesConfig":
        enabled = data.get("enabled") or []
        if not isinstance(enabled, list) or not all(isinstance(i, str) for i in enabled):
            raise ConfigurationError("'modules.enabled' must be a list of module ids")

        module_configs = _section(data, "module_configs", "modules.")
        for module_id, table in module_configs.items():
            if table is not None and not isinstance(table, dict):
                raise ConfigurationError(f"'modules.module_configs.{module_id}' must be a dictionary")

        aliases = _section(data, "aliases", "modules.")
        for alias, path in aliases.items():
            if not isinstance(path, str) or not path:
                raise ConfigurationError(f"'modules.aliases.{alias}' must be a file path")

        state = {}
        for module_id, states in _section(data, "state", "modules.").items():
            where = f"modules.state.{module_id}."
            if not isinstance(states, dict):
                raise ConfigurationError(f"'{where[:-1]}' must be a dictionary")
            state[module_id] = ModuleStateConfigSet(
                expanded=ModuleStateConfig.from_dict(_section(states, "expanded", where), f"{where}expanded."),
                collapsed=ModuleStateConfig.from_dict(_section(states, "collapsed", where), f"{where}collapsed."),
            )

        return cls(
            enabled=list(enabled),
            module_configs={k: dict(v or {}) for k, v in module_configs.items()},
            state=state,
            aliases=dict(aliases),
        )

    def state_for(self, module_id: str, expanded: bool) -> ModuleStateConfig:
        config_set = self.state.get(module_id)
        if config_set is None:
            return ModuleStateConfig()
        return config_set.for_state(expanded)


@dataclass
class LayoutRow:
    """
    One row of module references.

    Attributes:
        modules: Module ids in placement order
        alignment: Default alignment for modules in this row without an override
        spacing: Space below this row, overriding the state's row_spacing
    """

    modules: List[str] = field(default_factory=list)
    alignment: Optional[str] = None
    spacing: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any, where: str) -> "LayoutRow":
        # A bare list is shorthand for {modules: [...]}
        if isinstance(data, list):
            data = {"modules": data}
        if not isinstance(data, dict):
            raise ConfigurationError(f"'{where}' must be a dictionary or a list of module ids")
        modules = data.get("modules") or []
        if not isinstance(modules, list) or not all(isinstance(i, str) for i in modules):
            raise ConfigurationError(f"'{where}.modules' must be a list of module ids")
        return cls(
            modules=list(modules),
            alignment=_optional_alignment(data, f"{where}."),
            spacing=_optional_int(data, "spacing", f"{where}."),
        )


@dataclass
class LayoutState:
    rows: List[LayoutRow] = field(default_factory=list)
    row_spacing: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], where: str) -> "LayoutState":
        rows = data.get("rows") or []
        if not isinstance(rows, list):
            raise ConfigurationError(f"'{where}rows' must be a list")
        return cls(
            rows=[LayoutRow.from_dict(row, f"{where}rows[{i}]") for i, row in enumerate(rows)],
            row_spacing=_optional_int(data, "row_spacing", where),
        )


@dataclass
class LayoutConfig:
    expanded: LayoutState = field(default_factory=LayoutState)
    collapsed: LayoutState = field(default_factory=LayoutState)

    def for_state(self, expanded: bool) -> LayoutState:
        return self.expanded if expanded else self.collapsed


@dataclass
class NotchConfig:
    """
    Complete notch configuration.

    The top-level style keys form the main style; the 'collapsed' and
    'expanded' sections override it per state.
    """

    main: NotchStyle = field(default_factory=NotchStyle)
    collapsed: NotchStyle = field(default_factory=NotchStyle)
    expanded: NotchStyle = field(default_factory=NotchStyle)
    modules: ModulesConfig = field(default_factory=ModulesConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @classmethod
    def default(cls) -> "NotchConfig":
        """Configuration used when no file exists: a clock centered in the expanded notch."""
        return cls(
            main=NotchStyle(
                width=DEFAULT_WIDTH,
                height=DEFAULT_HEIGHT,
                corner_radius=DEFAULT_CORNER_RADIUS,
                background_color=DEFAULT_BACKGROUND_COLOR,
            ),
            layout=LayoutConfig(expanded=LayoutState(rows=[LayoutRow(modules=["clock"])])),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotchConfig":
        """
        Build a configuration from a plain dictionary.

        Raises:
            ConfigurationError: If any section has the wrong shape
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a dictionary")

        layout = _section(data, "layout", "")
        return cls(
            main=NotchStyle.from_dict(data),
            collapsed=NotchStyle.from_dict(_section(data, "collapsed", ""), "collapsed."),
            expanded=NotchStyle.from_dict(_section(data, "expanded", ""), "expanded."),
            modules=ModulesConfig.from_dict(_section(data, "modules", "")),
            layout=LayoutConfig(
                expanded=LayoutState.from_dict(_section(layout, "expanded", "layout."), "layout.expanded."),
                collapsed=LayoutState.from_dict(_section(layout, "collapsed", "layout."), "layout.collapsed."),
            ),
        )

    def style_for(self, expanded: bool) -> NotchStyleResolved:
        """Get the effective style for the expanded or collapsed state."""
        section = self.expanded if expanded else self.collapsed

        def pick(name, default):
            value = getattr(section, name)
            if value is None:
                value = getattr(self.main, name)
            return default if value is None else value

        return NotchStyleResolved(
            width=pick("width", DEFAULT_WIDTH),
            height=pick("height", DEFAULT_HEIGHT),
            corner_radius=pick("corner_radius", DEFAULT_CORNER_RADIUS),
            background_color=pick("background_color", DEFAULT_BACKGROUND_COLOR),
        )
