"""
Row/alignment layout for notch modules.

Rows are stacked top to bottom. Inside a row, each module goes into a left,
center or right group; left modules pack from x=0, right modules pack from
the row's right edge and center modules are centered as one block. Modules
always get exactly their preferred size. Overlaps between groups are the
configuration's problem and are not corrected.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from notch.config.models import NotchConfig
from notch.modules.base import BaseModule, Rect

logger = logging.getLogger(__name__)

# Horizontal gap between neighbouring modules in a group
MODULE_SPACING = 8

# Vertical gap below a row when neither the row nor the layout state sets one
DEFAULT_ROW_SPACING = 8

DEFAULT_ALIGNMENT = "center"


class ModuleLayout:
    """
    Result of a layout pass.

    Attributes:
        areas: Module id -> assigned rectangle
        width: Row width the layout was computed for
        height: Canvas height of the style the layout was computed for
        expanded: Expansion state the layout was computed for
    """

    def __init__(self, areas: Dict[str, Rect], width: int, height: int, expanded: bool):
        self.areas = areas
        self.width = width
        self.height = height
        self.expanded = expanded

    def __eq__(self, other) -> bool:
        if not isinstance(other, ModuleLayout):
            return NotImplemented
        return (self.areas, self.width, self.height, self.expanded) == (
            other.areas, other.width, other.height, other.expanded
        )

    def __repr__(self) -> str:
        return f"<ModuleLayout({self.width}x{self.height}, expanded={self.expanded}, areas={self.areas})>"


def _preferred_size(module: BaseModule) -> Tuple[int, int]:
    """Preferred size of module, or (0, 0) if the module fails to report one."""
    try:
        width, height = module.preferred_size()
        return max(0, int(width)), max(0, int(height))
    except Exception as e:
        logger.error(f"Error getting preferred size of module {module.module_id}: {e}", exc_info=True)
        return (0, 0)


def calculate_module_layout(
    config: NotchConfig,
    modules: Sequence[BaseModule],
    expanded: bool,
) -> ModuleLayout:
    """
    Compute an area for every visible, loaded module in the layout.

    Args:
        config: Notch configuration (style, layout rows, per-module overrides)
        modules: Loaded modules; ids not found here are skipped
        expanded: Which expansion state to lay out

    Returns:
        ModuleLayout for the style of that expansion state
    """
    style = config.style_for(expanded)
    layout_state = config.layout.for_state(expanded)
    state_spacing = layout_state.row_spacing
    if state_spacing is None:
        state_spacing = DEFAULT_ROW_SPACING

    by_id = {}
    for module in modules:
        by_id[module.module_id] = module

    areas: Dict[str, Rect] = {}
    y_offset = 0
    row_width = style.width

    for row in layout_state.rows:
        groups: Dict[str, List[BaseModule]] = {"left": [], "center": [], "right": []}

        for module_id in row.modules:
            state_cfg = config.modules.state_for(module_id, expanded)
            visible = True if state_cfg.visible is None else state_cfg.visible
            if not visible:
                continue
            module = by_id.get(module_id)
            if module is None:
                continue
            alignment = state_cfg.alignment or row.alignment or DEFAULT_ALIGNMENT
            groups.get(alignment, groups[DEFAULT_ALIGNMENT]).append(module)

        sizes = {id(m): _preferred_size(m) for group in groups.values() for m in group}
        placed = []

        x_offset = 0
        for module in groups["left"]:
            width, height = sizes[id(module)]
            placed.append((module, Rect(x_offset, y_offset, width, height), "left"))
            x_offset += width + MODULE_SPACING

        x_offset = row_width
        for module in reversed(groups["right"]):
            width, height = sizes[id(module)]
            x_offset -= width
            placed.append((module, Rect(x_offset, y_offset, width, height), "right"))
            x_offset -= MODULE_SPACING

        center = groups["center"]
        center_width = sum(sizes[id(m)][0] for m in center)
        center_width += MODULE_SPACING * max(0, len(center) - 1)
        x_offset = max(0, (row_width - center_width) // 2)
        for module in center:
            width, height = sizes[id(module)]
            placed.append((module, Rect(x_offset, y_offset, width, height), "center"))
            x_offset += width + MODULE_SPACING

        for module, area, alignment in placed:
            logger.debug(f"Placing module '{module.module_id}' at {area} (alignment: {alignment})")
            areas[module.module_id] = area

        row_height = max((area.height for _, area, _ in placed), default=0)
        spacing = state_spacing if row.spacing is None else row.spacing
        y_offset += row_height + spacing

    return ModuleLayout(areas, style.width, style.height, expanded)
