"""
Tests for ModuleRegistry and ModuleTypeRegistry
"""

import logging
import sys
import unittest

import pytest

from notch.config.models import NotchConfig
from notch.managers.module import ModuleRegistry, ModuleTypeRegistry
from notch.modules.base import BaseModule, Leave, Motion, Press, Rect, Update, UpdateExpanded
from notch.modules.clock import ClockModule

PLUGIN_SOURCE = """
import sys

from notch.modules.base import BaseModule


class HelloModule(BaseModule):
    module_id = "hello"

    def __init__(self):
        super().__init__()
        self.configs = []
        self.draws = []
        self.handle_present_at_shutdown = None

    def init(self, config):
        self.configs.append(config)

    def draw(self, canvas, area):
        self.draws.append(area)

    def preferred_size(self):
        return (60, 20)

    def shutdown(self):
        self.handle_present_at_shutdown = __name__ in sys.modules


def create_module():
    return HelloModule()
"""


class BoxModule(BaseModule):
    """Built-in style module used through the type registry"""

    module_id = "box"

    def __init__(self):
        super().__init__()
        self.configs = []
        self.draws = []
        self.shutdowns = 0

    def init(self, config):
        self.configs.append(config)

    def draw(self, canvas, area):
        self.draws.append(area)

    def preferred_size(self):
        return (40, 20)

    def shutdown(self):
        self.shutdowns += 1


class FragileModule(BoxModule):
    module_id = "fragile"

    def init(self, config):
        raise ValueError("bad config")


class BrokenConstructorModule(BoxModule):
    module_id = "broken"

    def __init__(self):
        raise RuntimeError("cannot construct")


@pytest.fixture
def type_registry():
    registry = ModuleTypeRegistry()
    for module_class in (BoxModule, FragileModule, BrokenConstructorModule, ClockModule):
        registry.register(module_class)
    return registry


@pytest.fixture
def registry(type_registry):
    registry = ModuleRegistry(type_registry)
    yield registry
    registry.clear()


def config_for(enabled, rows=None, aliases=None, module_configs=None, state=None):
    return NotchConfig.from_dict(
        {
            "width": 300,
            "height": 100,
            "modules": {
                "enabled": enabled,
                "aliases": aliases or {},
                "module_configs": module_configs or {},
                "state": state or {},
            },
            "layout": {"expanded": {"rows": rows if rows is not None else [enabled]}},
        }
    )


def left_to_right(*ids):
    return {module_id: {"expanded": {"alignment": "left"}} for module_id in ids}


class TestModuleTypeRegistry(unittest.TestCase):
    """Test built-in module type registration"""

    def setUp(self):
        self.registry = ModuleTypeRegistry()

    def test_register(self):
        self.registry.register(BoxModule)
        self.assertIs(self.registry.get_module_class("box"), BoxModule)
        self.assertEqual(self.registry.list_modules(), ["box"])

    def test_register_rejects_non_modules(self):
        with self.assertRaises(TypeError):
            self.registry.register(dict)
        with self.assertRaises(TypeError):
            self.registry.register("box")

    def test_register_requires_module_id(self):
        class Anonymous(BoxModule):
            module_id = None

        with self.assertRaises(ValueError):
            self.registry.register(Anonymous)

    def test_unknown_type(self):
        self.assertIsNone(self.registry.get_module_class("nope"))

    def test_auto_discover_finds_clock(self):
        self.registry.auto_discover()
        self.assertIs(self.registry.get_module_class("clock"), ClockModule)
        self.assertNotIn(None, self.registry.list_modules())


class TestLoadModules:
    """Test resolving the enabled list"""

    def test_builtin_modules_in_enabled_order(self, registry):
        registry.load_modules_from_config(config_for(["clock", "box"]))

        assert registry.module_ids() == ["clock", "box"]
        assert isinstance(registry.get_module("clock"), ClockModule)

    def test_init_receives_config_table(self, registry):
        registry.load_modules_from_config(
            config_for(["box"], module_configs={"box": {"color": "#FF0000", "nested": {"a": 1}}})
        )
        assert registry.get_module("box").configs == [{"color": "#FF0000", "nested": {"a": 1}}]

    def test_init_gets_empty_table_by_default(self, registry):
        registry.load_modules_from_config(config_for(["box"]))
        assert registry.get_module("box").configs == [{}]

    def test_unknown_module_is_skipped(self, registry, caplog):
        with caplog.at_level(logging.WARNING):
            registry.load_modules_from_config(config_for(["mystery", "box"]))

        assert registry.module_ids() == ["box"]
        assert "Unknown module: mystery" in caplog.text

    def test_init_failure_keeps_module(self, registry, caplog):
        with caplog.at_level(logging.WARNING):
            registry.load_modules_from_config(config_for(["fragile", "box"]))

        assert registry.module_ids() == ["fragile", "box"]
        failures = [r for r in caplog.records if "Failed to initialize module fragile" in r.getMessage()]
        assert [r.levelno for r in failures] == [logging.WARNING]

    def test_constructor_failure_is_skipped(self, registry):
        registry.load_modules_from_config(config_for(["broken", "box"]))
        assert registry.module_ids() == ["box"]

    def test_reload_keeps_existing_instances(self, registry):
        registry.load_modules_from_config(config_for(["box"]))
        box = registry.get_module("box")

        registry.load_modules_from_config(config_for(["box", "clock"]))

        assert registry.get_module("box") is box
        assert registry.module_ids() == ["box", "clock"]
        # Every reload re-applies configuration
        assert box.configs == [{}, {}]

    def test_removed_module_is_disposed(self, registry):
        registry.load_modules_from_config(config_for(["box", "clock"]))
        box = registry.get_module("box")

        registry.load_modules_from_config(config_for(["clock"]))

        assert registry.module_ids() == ["clock"]
        assert box.shutdowns == 1

    def test_removed_module_loses_its_area_before_relayout(self, registry):
        config = config_for(["box", "clock"], state=left_to_right("box"))
        registry.load_modules_from_config(config)
        registry.calculate_layout(config, True)
        clock_area = registry.module_areas["clock"]

        registry.load_modules_from_config(config_for(["clock"]))

        assert set(registry.module_areas) <= set(registry.module_ids())
        assert registry.module_areas == {"clock": clock_area}

    def test_emptied_registry_has_no_areas(self, registry):
        config = config_for(["clock"])
        registry.load_modules_from_config(config)
        registry.calculate_layout(config, True)

        registry.load_modules_from_config(config_for([]))

        assert registry.module_ids() == []
        assert registry.module_areas == {}

    def test_reload_scenario_stops_drawing_removed_module(self, registry, make_canvas):
        config = config_for(["box", "clock"], state=left_to_right("box"))
        registry.load_modules_from_config(config)
        registry.calculate_layout(config, True)
        box = registry.get_module("box")
        registry.draw(make_canvas(300, 100), True)
        assert len(box.draws) == 1

        config = config_for(["clock"])
        registry.load_modules_from_config(config)
        registry.calculate_layout(config, True)
        registry.draw(make_canvas(300, 100), True)

        assert "box" not in registry.module_areas
        assert len(box.draws) == 1


class TestPluginModules:
    """Test resolving aliases and external: entries to plugin files"""

    def test_alias_loads_plugin(self, registry, plugin_file):
        path = plugin_file(PLUGIN_SOURCE, "hello.py")
        config = config_for(
            ["hello"], aliases={"hello": str(path)}, module_configs={"hello": {"greeting": "hi"}}
        )

        registry.load_modules_from_config(config)

        module = registry.get_module("hello")
        assert module is not None
        assert module.configs == [{"greeting": "hi"}]

    def test_alias_beats_builtin(self, registry, plugin_file):
        path = plugin_file(PLUGIN_SOURCE.replace('"hello"', '"clock"'), "myclock.py")
        registry.load_modules_from_config(config_for(["clock"], aliases={"clock": str(path)}))

        assert not isinstance(registry.get_module("clock"), ClockModule)

    def test_external_prefix(self, registry, plugin_file):
        path = plugin_file(PLUGIN_SOURCE, "hello.py")
        registry.load_modules_from_config(config_for([f"external:{path}"], rows=[["hello"]]))

        assert registry.module_ids() == ["hello"]

    def test_missing_plugin_is_skipped(self, registry, tmp_path, caplog):
        missing = tmp_path / "missing.py"
        with caplog.at_level(logging.WARNING):
            registry.load_modules_from_config(
                config_for(["hello", "box"], aliases={"hello": str(missing)})
            )

        assert registry.module_ids() == ["box"]
        assert "Failed to load external module hello" in caplog.text

    def test_unload_disposes_module_before_code(self, registry, plugin_file):
        path = plugin_file(PLUGIN_SOURCE, "hello.py")
        registry.load_modules_from_config(config_for(["hello"], aliases={"hello": str(path)}))
        module = registry.get_module("hello")
        import_name = type(module).__module__
        assert import_name in sys.modules

        registry.load_modules_from_config(config_for([]))

        assert module.handle_present_at_shutdown is True
        assert import_name not in sys.modules
        assert not registry.has_modules()

    def test_clear_unloads_plugins(self, registry, plugin_file):
        path = plugin_file(PLUGIN_SOURCE, "hello.py")
        registry.load_modules_from_config(config_for(["hello", "box"], aliases={"hello": str(path)}))
        import_name = type(registry.get_module("hello")).__module__
        box = registry.get_module("box")

        registry.clear()

        assert import_name not in sys.modules
        assert box.shutdowns == 1
        assert registry.module_areas == {}


class TestDraw:
    """Test drawing modules into their areas"""

    def test_draws_in_area_in_registration_order(self, registry, make_module, make_canvas):
        calls = []
        first = make_module("first", (40, 20))
        second = make_module("second", (40, 20))
        first.draw = lambda canvas, area: calls.append(("first", area))
        second.draw = lambda canvas, area: calls.append(("second", area))
        registry.add_module(second)
        registry.add_module(first)

        config = config_for(["first", "second"], state=left_to_right("first", "second"))
        registry.calculate_layout(config, True)
        registry.draw(make_canvas(300, 100), True)

        assert calls == [("second", Rect(48, 0, 40, 20)), ("first", Rect(0, 0, 40, 20))]

    def test_module_without_area_not_drawn(self, registry, make_module, make_canvas):
        placed = make_module("placed")
        hidden = make_module("hidden")
        registry.add_module(placed)
        registry.add_module(hidden)

        registry.calculate_layout(config_for(["placed", "hidden"], rows=[["placed"]]), True)
        registry.draw(make_canvas(300, 100), True)

        assert len(placed.draws) == 1
        assert hidden.draws == []

    def test_draw_failure_is_isolated(self, registry, make_module, make_canvas):
        broken = make_module("broken", fail_on={"draw"})
        healthy = make_module("healthy")
        registry.add_module(broken)
        registry.add_module(healthy)
        config = config_for(["broken", "healthy"], state=left_to_right("broken", "healthy"))
        registry.calculate_layout(config, True)

        canvas = make_canvas(300, 100)
        registry.draw(canvas, True)
        registry.draw(canvas, True)

        assert len(healthy.draws) == 2
        assert canvas.get_pixel(58, 0) == (1, 2, 3, 255)

    def test_size_mismatch_skips_drawing(self, registry, make_module, make_canvas, caplog):
        module = make_module("a")
        registry.add_module(module)
        registry.calculate_layout(config_for(["a"]), True)

        with caplog.at_level(logging.WARNING):
            registry.draw(make_canvas(200, 100), True)

        assert module.draws == []
        assert "skipping module drawing" in caplog.text

    def test_state_mismatch_skips_drawing(self, registry, make_module, make_canvas):
        module = make_module("a")
        registry.add_module(module)
        registry.calculate_layout(config_for(["a"]), True)

        registry.draw(make_canvas(300, 100), False)

        assert module.draws == []

    def test_no_layout_draws_nothing(self, registry, make_module, make_canvas):
        module = make_module("a")
        registry.add_module(module)
        registry.draw(make_canvas(300, 100))
        assert module.draws == []


class TestEventDispatch:
    """Test hit-testing and broadcasting"""

    @pytest.fixture
    def two_modules(self, registry, make_module):
        left = make_module("left", (50, 20))
        right = make_module("right", (60, 20))
        registry.add_module(left)
        registry.add_module(right)
        state = {
            "left": {"expanded": {"alignment": "left"}},
            "right": {"expanded": {"alignment": "right"}},
        }
        registry.calculate_layout(config_for(["left", "right"], state=state), True)
        return left, right

    def test_positional_event_goes_to_containing_module(self, registry, two_modules):
        left, right = two_modules

        registry.handle_event(Press(1, 250, 10))

        assert left.events == []
        assert right.events == [(Press(1, 250, 10), Rect(240, 0, 60, 20))]

    def test_positional_event_outside_every_area(self, registry, two_modules):
        left, right = two_modules

        assert registry.handle_event(Motion(150, 10)) is False
        assert left.events == [] and right.events == []

    def test_area_edges_are_half_open(self, registry, two_modules):
        left, right = two_modules

        registry.handle_event(Motion(50, 0))
        registry.handle_event(Motion(0, 20))

        assert left.events == []

    def test_first_containing_module_wins(self, registry, make_module):
        first = make_module("first", (200, 20), handles=False)
        second = make_module("second", (200, 20), handles=True)
        registry.add_module(first)
        registry.add_module(second)
        state = {
            "first": {"expanded": {"alignment": "left"}},
            "second": {"expanded": {"alignment": "right"}},
        }
        registry.calculate_layout(config_for(["first", "second"], state=state), True)
        areas = registry.module_areas
        assert areas["first"].contains(150, 10) and areas["second"].contains(150, 10)

        handled = registry.handle_event(Press(1, 150, 10))

        assert handled is False
        assert len(first.events) == 1
        assert second.events == []

    def test_handler_result_is_returned(self, registry, make_module):
        module = make_module("a", handles=True)
        registry.add_module(module)
        registry.calculate_layout(config_for(["a"]), True)

        assert registry.handle_event(Press(1, 150, 5)) is True

    def test_broadcast_reaches_every_module_with_area(self, registry, two_modules, make_module):
        left, right = two_modules
        unplaced = make_module("unplaced")
        registry.add_module(unplaced)

        assert registry.handle_event(UpdateExpanded()) is False

        assert len(left.events) == 1
        assert len(right.events) == 1
        assert unplaced.events == []

    def test_broadcast_stops_when_handled(self, registry, two_modules):
        left, right = two_modules
        left.handles = True

        assert registry.handle_event(Update()) is True

        assert len(left.events) == 1
        assert right.events == []

    def test_leave_is_broadcast(self, registry, two_modules):
        left, right = two_modules
        registry.handle_event(Leave())
        assert len(left.events) == 1 and len(right.events) == 1

    def test_handler_exception_is_not_handled(self, registry, two_modules):
        left, right = two_modules
        left.fail_on.add("handle_event")

        assert registry.handle_event(Update()) is False
        assert len(right.events) == 1

        assert registry.handle_event(Press(1, 10, 10)) is False

    def test_no_layout_means_no_dispatch(self, registry, make_module):
        module = make_module("a", handles=True)
        registry.add_module(module)

        assert registry.handle_event(Update()) is False
        assert module.events == []


class TestRegistryBookkeeping:
    """Test the small accessors"""

    def test_module_areas_is_a_copy(self, registry, make_module):
        registry.add_module(make_module("a"))
        registry.calculate_layout(config_for(["a"]), True)

        areas = registry.module_areas
        areas.clear()

        assert "a" in registry.module_areas

    def test_layout_replaced_on_recalculation(self, registry, make_module):
        registry.add_module(make_module("a"))
        expanded = registry.calculate_layout(config_for(["a"]), True)
        collapsed = registry.calculate_layout(config_for(["a"]), False)

        assert registry.layout is collapsed
        assert expanded.areas and not collapsed.areas

    def test_remove_unknown_key(self, registry):
        assert registry.remove_module("nope") is False

    def test_add_module_key_defaults_to_id(self, registry, make_module):
        module = make_module("a")
        registry.add_module(module)

        assert registry.remove_module("a") is True
        assert module.shutdowns == 1
        assert registry.get_module("a") is None
