"""
Configuration management system for PyStreetSim.

This module provides centralized configuration management with support for
JSON files, environment variables, and runtime overrides.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.exceptions import ConfigurationError


class Config:
    """
    Central configuration manager for PyStreetSim.

    Handles loading configuration from multiple sources:
    1. Default values (hardcoded)
    2. User config file (~/.pystreetsim/config.json)
    3. Project config file (./config.json or the path given)
    4. Environment variables (PYSTREETSIM_SECTION__KEY)
    5. Runtime overrides
    """

    ENV_PREFIX = "PYSTREETSIM_"
    ENV_SEPARATOR = "__"

    _defaults = {
        "app": {
            "name": "PyStreetSim",
            "version": "0.1.0",
            "debug": False,
            "log_level": "INFO",
            "fps_target": 60,
            "window": {
                "width": 520,
                "height": 260,
            }
        },
        "vehicle": {
            "max_speed": 8.0,
            "accel_rate": 0.8,
            "turn_rate": 1.5,
            "movement_scale": 2.0,
            "brake_factor": 0.85,
            "acceleration_decay": 0.95,
            "settle_threshold": 0.1,
            "settle_factor": 0.9,
            "steering_floor": 0.5,
            "centering_base": 0.9,
            "centering_speed_gain": 0.1,
            "decay_mode": "per_tick",
            "reference_fps": 60.0,
            "wheel_rotation_speed": 8.0,
        },
        "road": {
            "width": 8.0,
            "left_curb_x": -4.25,
            "right_curb_x": 4.25,
            "curb_policy": "right",
        },
        "scene": {
            "player": {"id": "player", "color": "blue", "x": 0.0, "z": 0.0, "heading": 0.0},
            "static_vehicles": [
                {"id": "red_car", "color": "red", "x": 3.0, "z": -8.0},
                {"id": "yellow_car", "color": "yellow", "x": 3.0, "z": 8.0},
            ],
        },
        "input": {
            "key_bindings": {
                "w": "accelerate",
                "s": "brake",
                "a": "steer_left",
                "d": "steer_right",
                "space": "handbrake",
                "up": "accelerate",
                "down": "brake",
                "left": "steer_left",
                "right": "steer_right",
            },
        },
    }

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to specific config file
        """
        self._config: Dict[str, Any] = {}
        self._config_file = config_file
        self._load_configuration()

    def _load_configuration(self) -> None:
        """Load configuration from all sources in priority order."""
        self._config = self._deep_copy(self._defaults)

        user_config_path = self._get_user_config_path()
        if user_config_path.exists():
            self._load_from_file(user_config_path)

        if self._config_file:
            config_path = Path(self._config_file)
            if not config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {config_path}",
                                         context={"path": str(config_path)})
            self._load_from_file(config_path)
        else:
            project_config = Path("config.json")
            if project_config.exists():
                self._load_from_file(project_config)

        self._load_from_env()

    def _get_user_config_path(self) -> Path:
        """Get the user-specific config file path."""
        return Path.home() / ".pystreetsim" / "config.json"

    def _load_from_file(self, file_path: Path) -> None:
        """Load configuration from JSON file."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Could not parse config file {file_path}",
                                     context={"path": str(file_path)}, cause=e) from e

        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {file_path} must contain a JSON object",
                                     context={"path": str(file_path)})
        self._deep_merge(self._config, file_config)

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.ENV_PREFIX):
                # PYSTREETSIM_VEHICLE__MAX_SPEED -> ["vehicle", "max_speed"]
                config_key = key[len(self.ENV_PREFIX):].lower().split(self.ENV_SEPARATOR)
                self._set_nested_value(self._config, config_key, self._parse_env_value(value))

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

        if value.lower() in ('true', 'yes', 'on'):
            return True
        elif value.lower() in ('false', 'no', 'off'):
            return False

        return value

    def _set_nested_value(self, config: Dict[str, Any], keys: list, value: Any) -> None:
        """Set a nested configuration value."""
        for key in keys[:-1]:
            if not isinstance(config.get(key), dict):
                config[key] = {}
            config = config[key]
        config[keys[-1]] = value

    def _deep_copy(self, obj: Any) -> Any:
        """Deep copy configuration object."""
        if isinstance(obj, dict):
            return {k: self._deep_copy(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._deep_copy(v) for v in obj]
        else:
            return obj

    def _deep_merge(self, target: Dict[str, Any], source: Dict[str, Any]) -> None:
        """Deep merge source dict into target dict."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._deep_merge(target[key], value)
            else:
                target[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., "vehicle.max_speed")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self._config
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Configuration key in dot notation
            value: Value to set
        """
        self._set_nested_value(self._config, key.split('.'), value)

    def save(self, file_path: Optional[Union[str, Path]] = None) -> None:
        """
        Save current configuration to file.

        Args:
            file_path: Optional path to save to, defaults to user config
        """
        file_path = Path(file_path) if file_path else self._get_user_config_path()
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)

    def reload(self) -> None:
        """Reload configuration from all sources."""
        self._load_configuration()

    def get_all(self) -> Dict[str, Any]:
        """Get the complete configuration dictionary."""
        return self._deep_copy(self._config)

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = self._deep_copy(self._defaults)

    @property
    def debug(self) -> bool:
        """Debug mode flag."""
        return self.get("app.debug", False)

    @property
    def log_level(self) -> str:
        """Logging level."""
        return self.get("app.log_level", "INFO")


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config_instance
    _config_instance = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config_instance
    _config_instance = None
