"""
Pytest configuration and fixtures
"""

import textwrap

import pytest

from notch.config.models import NotchConfig
from notch.modules.base import BaseModule
from notch.render.canvas import PixelCanvas
from notch.render.fonts import FontSource, Glyph, RenderContext


class BlockFontSource(FontSource):
    """
    Deterministic font: every visible character is a solid block.

    Blocks are size // 2 wide and size tall with the given coverage;
    spaces are empty. The pen advances block width + 1.
    """

    def __init__(self, coverage=255):
        self.coverage = coverage
        self.requests = []

    def glyph(self, char, size):
        self.requests.append((char, size))
        width = max(1, int(size) // 2)
        height = max(1, int(size))
        if char.isspace():
            return Glyph(b"", 0, 0, 0, 0, float(width + 1))
        return Glyph(bytes([self.coverage]) * (width * height), width, height, 0, 0, float(width + 1))


class StubModule(BaseModule):
    """Module with a fixed size that records every call it receives"""

    def __init__(self, module_id, size=(50, 20), handles=False, fail_on=()):
        self.module_id = module_id
        super().__init__()
        self.size = size
        self.handles = handles
        self.fail_on = set(fail_on)
        self.configs = []
        self.draws = []
        self.events = []
        self.shutdowns = 0

    def _maybe_fail(self, call):
        if call in self.fail_on:
            raise RuntimeError(f"{self.module_id} failed in {call}")

    def init(self, config):
        self.configs.append(config)
        self._maybe_fail("init")

    def draw(self, canvas, area):
        self.draws.append(area)
        self._maybe_fail("draw")
        canvas.fill_rect(area.x, area.y, area.width, area.height, (1, 2, 3, 255))

    def handle_event(self, event, area):
        self.events.append((event, area))
        self._maybe_fail("handle_event")
        return self.handles

    def preferred_size(self):
        self._maybe_fail("preferred_size")
        return self.size

    def shutdown(self):
        self.shutdowns += 1


@pytest.fixture
def make_module():
    """Factory for StubModule instances"""
    return StubModule


@pytest.fixture
def block_font():
    """Solid-block font source"""
    return BlockFontSource()


@pytest.fixture
def render_context(block_font):
    """Render context using the block font"""
    return RenderContext(block_font)


@pytest.fixture
def make_canvas(render_context):
    """Factory for canvases over fresh buffers filled with one color"""

    def _make(width=40, height=20, fill=(0, 0, 0, 0)):
        buffer = bytearray(bytes(fill) * (width * height))
        return PixelCanvas(buffer, width, height, render_context)

    return _make


@pytest.fixture
def sample_config():
    """Sample configuration dictionary as it would come from YAML"""
    return {
        "width": 300,
        "height": 40,
        "corner_radius": 10,
        "background_color": "#000000",
        "collapsed": {"width": 200, "height": 32},
        "expanded": {"width": 400, "height": 120, "corner_radius": 16},
        "modules": {
            "enabled": ["clock"],
            "module_configs": {
                "clock": {"format": "%H:%M", "font_size": 18, "color": "#FFFFFF"},
            },
            "state": {
                "clock": {
                    "expanded": {"alignment": "left"},
                    "collapsed": {"visible": False},
                },
            },
        },
        "layout": {
            "expanded": {
                "row_spacing": 6,
                "rows": [{"modules": ["clock"]}],
            },
            "collapsed": {"rows": [["clock"]]},
        },
    }


@pytest.fixture
def notch_config(sample_config):
    """Typed configuration built from sample_config"""
    return NotchConfig.from_dict(sample_config)


@pytest.fixture
def plugin_file(tmp_path):
    """Write a plugin source file and return its path"""

    def _write(source, name="plugin.py"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(source))
        return path

    return _write
