"""
Configuration loader for Notch
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from notch.utils.errors import ConfigurationError

from .models import NotchConfig

logger = logging.getLogger(__name__)

# Maximum config file size (1MB should be plenty for YAML configs)
MAX_CONFIG_SIZE = 1024 * 1024


def get_config_path() -> Path:
    """Default configuration file location (~/.config/notch/config.yaml)."""
    return Path.home() / ".config" / "notch" / "config.yaml"


class ConfigLoader:
    """Loads and validates YAML configuration files"""

    def load(self, config_path: Optional[str] = None) -> NotchConfig:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to YAML configuration file. When omitted, the
                default location is used and a missing file yields the
                default configuration.

        Returns:
            Validated configuration

        Raises:
            FileNotFoundError: If an explicitly given config file doesn't exist
            ConfigurationError: If config file is invalid or too large
            PermissionError: If config file is not readable
        """
        if config_path is None:
            resolved_path = get_config_path()
            if not resolved_path.exists():
                logger.info(f"No configuration at {resolved_path}, using defaults")
                return NotchConfig.default()
        else:
            resolved_path = Path(config_path).expanduser().resolve()

        self._validate_config_path(resolved_path)

        if not resolved_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {resolved_path}")

        file_size = resolved_path.stat().st_size
        if file_size > MAX_CONFIG_SIZE:
            raise ConfigurationError(
                f"Configuration file too large: {file_size} bytes "
                f"(maximum {MAX_CONFIG_SIZE} bytes)"
            )

        try:
            with open(resolved_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

        config = self.load_dict(data)
        logger.info(f"Loaded configuration from {resolved_path}")
        return config

    def load_dict(self, data: Any) -> NotchConfig:
        """
        Validate an already-parsed configuration mapping.

        An empty document gives the default configuration.
        """
        if data is None:
            return NotchConfig.default()

        self._validate(data)
        data = self._apply_defaults(data)
        return NotchConfig.from_dict(data)

    def _validate_config_path(self, config_path: Path) -> None:
        """
        Validate that the configuration file path is safe to load.

        Raises:
            ConfigurationError: If path is not a regular file
        """
        if config_path.is_dir():
            raise ConfigurationError(f"Path is a directory, not a file: {config_path}")

        if config_path.suffix.lower() not in [".yaml", ".yml"]:
            logger.warning(
                f"Configuration file has unexpected extension: {config_path.suffix}. "
                f"Expected .yaml or .yml"
            )

        logger.debug(f"Configuration path validated: {config_path}")

    def _validate(self, data: Any) -> None:
        """Validate top-level configuration structure"""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a dictionary")

        for section in ("collapsed", "expanded", "modules", "layout"):
            if section in data and data[section] is not None and not isinstance(data[section], dict):
                raise ConfigurationError(f"'{section}' must be a dictionary")

        enabled = (data.get("modules") or {}).get("enabled")
        if enabled is not None:
            if not isinstance(enabled, list) or not all(isinstance(i, str) for i in enabled):
                raise ConfigurationError("'modules.enabled' must be a list of module ids")

        self._warn_unknown_layout_ids(data)

    def _warn_unknown_layout_ids(self, data: Dict[str, Any]) -> None:
        """Layout rows may only place enabled modules; others are silently skipped."""
        enabled = (data.get("modules") or {}).get("enabled") or []
        layout = data.get("layout") or {}

        for state in ("collapsed", "expanded"):
            state_config = layout.get(state) or {}
            if not isinstance(state_config, dict) or not isinstance(state_config.get("rows"), list):
                continue

            for row in state_config["rows"]:
                if isinstance(row, dict):
                    row = row.get("modules") or []
                if not isinstance(row, list):
                    continue
                for module_id in row:
                    if module_id not in enabled:
                        logger.warning(
                            f"Layout '{state}' references module '{module_id}' "
                            f"which is not enabled"
                        )

    def _apply_defaults(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply default values to configuration"""
        data = dict(data)
        data.setdefault("width", 300)
        data.setdefault("height", 40)
        data.setdefault("corner_radius", 10)
        data.setdefault("background_color", [0, 0, 0, 255])

        modules = dict(data.get("modules") or {})
        modules.setdefault("enabled", [])
        data["modules"] = modules

        return data
