"""
Settings module for PyStreetSim.

Provides validated, typed access to configuration values and builds the
value objects the simulation is composed from.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from .config import get_config, Config
from ..core.exceptions import InvalidConfigValueError


class Settings:
    """
    High-level settings interface with validation and type safety.

    Numeric display settings are clamped into a sane range; values the
    simulation cannot run with raise InvalidConfigValueError.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize settings with optional config instance.

        Args:
            config: Optional Config instance, uses global if not provided
        """
        self._config = config or get_config()

    def _number(self, key: str, default: float, positive: bool = False) -> float:
        value = self._config.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidConfigValueError(key, value, "a finite number")
        if positive and value <= 0:
            raise InvalidConfigValueError(key, value, "a positive number")
        return float(value)

    # Application settings
    @property
    def app_name(self) -> str:
        return self._config.get("app.name", "PyStreetSim")

    @property
    def debug_mode(self) -> bool:
        """Debug mode enabled."""
        return bool(self._config.get("app.debug", False))

    @property
    def log_level(self) -> str:
        """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""
        level = str(self._config.get("app.log_level", "INFO")).upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        return level if level in valid_levels else "INFO"

    @property
    def target_fps(self) -> int:
        """Target frames per second."""
        fps = self._config.get("app.fps_target", 60)
        return max(1, min(int(fps), 240))  # Clamp between 1 and 240

    @property
    def window_width(self) -> int:
        width = self._config.get("app.window.width", 520)
        return max(320, min(int(width), 7680))

    @property
    def window_height(self) -> int:
        height = self._config.get("app.window.height", 260)
        return max(200, min(int(height), 4320))

    @property
    def window_size(self) -> Tuple[int, int]:
        """Window size as (width, height) tuple."""
        return (self.window_width, self.window_height)

    # Vehicle settings
    @property
    def decay_mode(self):
        """Per-tick or continuous-time application of the damping factors."""
        from ..simulation.kinematics import DecayMode

        raw = self._config.get("vehicle.decay_mode", "per_tick")
        try:
            return DecayMode(str(raw).lower())
        except ValueError:
            raise InvalidConfigValueError(
                "vehicle.decay_mode", raw, " or ".join(m.value for m in DecayMode))

    @property
    def wheel_rotation_speed(self) -> float:
        return self._number("vehicle.wheel_rotation_speed", 8.0)

    def kinematics_parameters(self):
        """Build the KinematicsParameters for controllable vehicles."""
        from ..simulation.kinematics import KinematicsParameters

        return KinematicsParameters(
            max_speed=self._number("vehicle.max_speed", 8.0, positive=True),
            accel_rate=self._number("vehicle.accel_rate", 0.8),
            turn_rate=self._number("vehicle.turn_rate", 1.5),
            movement_scale=self._number("vehicle.movement_scale", 2.0),
            brake_factor=self._number("vehicle.brake_factor", 0.85),
            acceleration_decay=self._number("vehicle.acceleration_decay", 0.95),
            settle_threshold=self._number("vehicle.settle_threshold", 0.1),
            settle_factor=self._number("vehicle.settle_factor", 0.9),
            steering_floor=self._number("vehicle.steering_floor", 0.5),
            centering_base=self._number("vehicle.centering_base", 0.9),
            centering_speed_gain=self._number("vehicle.centering_speed_gain", 0.1),
            decay_mode=self.decay_mode,
            reference_fps=self._number("vehicle.reference_fps", 60.0, positive=True),
        )

    # Road settings
    @property
    def curb_policy(self):
        """Which curb(s) the proximity monitor measures against."""
        from ..simulation.proximity import CurbPolicy

        raw = self._config.get("road.curb_policy", "right")
        try:
            return CurbPolicy(str(raw).lower())
        except ValueError:
            raise InvalidConfigValueError(
                "road.curb_policy", raw, " or ".join(p.value for p in CurbPolicy))

    def road_geometry(self):
        """Build the immutable RoadGeometry."""
        from ..simulation.proximity import RoadGeometry

        return RoadGeometry(
            road_width=self._number("road.width", 8.0, positive=True),
            left_curb_x=self._number("road.left_curb_x", -4.25),
            right_curb_x=self._number("road.right_curb_x", 4.25),
        )

    # Scene settings
    def player_spawn(self):
        """Initial pose of the player-controlled vehicle."""
        from ..simulation.kinematics import GroundPoint
        from ..simulation.scene import VehicleSpawn

        return VehicleSpawn(
            vehicle_id=str(self._config.get("scene.player.id", "player")),
            color=str(self._config.get("scene.player.color", "blue")),
            position=GroundPoint(self._number("scene.player.x", 0.0),
                                 self._number("scene.player.z", 0.0)),
            heading=self._number("scene.player.heading", 0.0),
        )

    def static_vehicles(self) -> List[Any]:
        """Parked vehicles, in configuration order."""
        from ..simulation.kinematics import GroundPoint
        from ..simulation.proximity import StaticVehicle

        raw = self._config.get("scene.static_vehicles", [])
        if not isinstance(raw, list):
            raise InvalidConfigValueError("scene.static_vehicles", raw, "a list of vehicles")

        vehicles = []
        for index, entry in enumerate(raw):
            key = f"scene.static_vehicles[{index}]"
            if not isinstance(entry, dict) or "x" not in entry or "z" not in entry:
                raise InvalidConfigValueError(key, entry, "an object with x and z")
            try:
                position = GroundPoint(float(entry["x"]), float(entry["z"]))
            except (TypeError, ValueError):
                raise InvalidConfigValueError(key, entry, "numeric x and z")
            color = str(entry.get("color", "gray"))
            vehicles.append(StaticVehicle(
                vehicle_id=str(entry.get("id", f"{color}_car")),
                position=position,
                color=color,
            ))
        return vehicles

    # Input settings
    def key_bindings(self) -> Dict[str, Any]:
        """Key name to Intent table for the keyboard."""
        from ..input.commands import parse_key_bindings

        raw = self._config.get("input.key_bindings", {})
        if not isinstance(raw, dict):
            raise InvalidConfigValueError("input.key_bindings", raw, "a key -> intent mapping")
        return parse_key_bindings(raw)

    # Convenience methods
    def update_setting(self, key: str, value: Any) -> None:
        """
        Update a setting value.

        Args:
            key: Setting key in dot notation
            value: New value
        """
        self._config.set(key, value)

    def is_development_mode(self) -> bool:
        """Check if running in development mode."""
        return self.debug_mode or self.log_level == "DEBUG"


# Global settings instance
_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings_instance
    _settings_instance = settings


def reset_settings() -> None:
    """Reset the global settings instance."""
    global _settings_instance
    _settings_instance = None
