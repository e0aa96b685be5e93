#!/usr/bin/env python3
"""
Notch CLI - command-line tools for notch configurations.

Validates configuration files, lists built-in modules and renders single
frames to PNG so layouts can be checked without a compositor.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config.loader import ConfigLoader, get_config_path
from .controller import NotchController
from .managers.module import ModuleRegistry, ModuleTypeRegistry
from .render.canvas import PixelCanvas
from .utils.errors import NotchError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class NotchCLI:
    """Main CLI handler for Notch commands."""

    def __init__(self, type_registry: Optional[ModuleTypeRegistry] = None) -> None:
        self.config_loader = ConfigLoader()
        if type_registry is None:
            type_registry = ModuleTypeRegistry()
            type_registry.auto_discover()
        self.type_registry = type_registry

    def validate_config(self, config_path: Optional[str] = None) -> int:
        """
        Validate a configuration file.

        Args:
            config_path: Path to the YAML file (default location when omitted)
        """
        path = config_path or str(get_config_path())
        print(f"Validating {path}...")

        try:
            config = self.config_loader.load(path)
        except FileNotFoundError as e:
            print(f"\n❌ {e}")
            return 1
        except (NotchError, OSError) as e:
            print(f"\n❌ Validation FAILED:\n  {e}")
            return 1

        warnings = []
        builtin = set(self.type_registry.list_modules())
        for module_id in config.modules.enabled:
            if module_id in config.modules.aliases:
                alias_path = Path(config.modules.aliases[module_id]).expanduser()
                if not alias_path.is_file():
                    warnings.append(f"Plugin for '{module_id}' not found: {alias_path}")
            elif module_id.startswith("external:"):
                plugin_path = Path(module_id[len("external:"):]).expanduser()
                if not plugin_path.is_file():
                    warnings.append(f"Plugin not found: {plugin_path}")
            elif module_id not in builtin:
                warnings.append(f"Unknown module '{module_id}' (not built in and no alias)")

        if not config.layout.expanded.rows and not config.layout.collapsed.rows:
            warnings.append("No layout rows defined (modules will not be shown)")

        print("\n✅ Configuration is valid")

        if warnings:
            print("\n⚠️  Warnings:")
            for warning in warnings:
                print(f"  WARNING: {warning}")

        return 0

    def list_modules(self) -> int:
        """List built-in module ids."""
        print("Built-in modules:\n")
        for module_id in sorted(self.type_registry.list_modules()):
            module_class = self.type_registry.get_module_class(module_id)
            print(f"  {module_id:<12} {module_class.name or module_class.__name__}")
        return 0

    def render_frame(self, config_path: Optional[str], output: str, expanded: bool = False) -> int:
        """
        Render one frame of the configured notch to a PNG file.

        Args:
            config_path: Path to the YAML file (default location when omitted)
            output: Output PNG path
            expanded: Render the expanded state instead of the collapsed one
        """
        try:
            config = self.config_loader.load(config_path)
        except (NotchError, OSError) as e:
            print(f"❌ Cannot load configuration: {e}")
            return 1

        controller = NotchController(config, registry=ModuleRegistry(self.type_registry))
        try:
            controller.resize(expanded)
            buffer = controller.draw(force=True)
            if buffer is None:
                print("❌ Failed to render frame")
                return 1

            with PixelCanvas(buffer, controller.width, controller.height) as canvas:
                image = canvas.to_image()
            image.save(output, format="PNG")
        except OSError as e:
            print(f"❌ Cannot write {output}: {e}")
            return 1
        finally:
            controller.shutdown()

        state = "expanded" if expanded else "collapsed"
        print(f"Rendered {state} notch ({controller.width}x{controller.height}) to {output}")
        return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="notch",
        description="Notch - overlay notch with pluggable modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  notch validate ~/.config/notch/config.yaml   # Validate a configuration
  notch modules                                 # List built-in modules
  notch render config.yaml -o notch.png -e      # Render the expanded notch
""",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser("validate", help="Validate a configuration")
    validate_parser.add_argument(
        "config", nargs="?", default=None, help="Configuration file (default: ~/.config/notch/config.yaml)"
    )

    subparsers.add_parser("modules", help="List built-in modules")

    render_parser = subparsers.add_parser("render", help="Render one frame to a PNG file")
    render_parser.add_argument(
        "config", nargs="?", default=None, help="Configuration file (default: ~/.config/notch/config.yaml)"
    )
    render_parser.add_argument("-o", "--output", default="notch.png", help="Output PNG path")
    render_parser.add_argument(
        "-e", "--expanded", action="store_true", help="Render the expanded state"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    cli = NotchCLI()

    if args.command == "validate":
        return cli.validate_config(args.config)

    elif args.command == "modules":
        return cli.list_modules()

    elif args.command == "render":
        return cli.render_frame(args.config, args.output, args.expanded)

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
