"""
PyStreetSim - street scene with keyboard-driven vehicle kinematics and a
proximity monitor for the overhead status panel.
"""

__version__ = "0.1.0"

from .config import Config, get_settings
from .input import InputCommandSet, Intent, CommandSnapshot
from .simulation import (
    StreetScene,
    VehicleKinematicsModel,
    VehicleState,
    ProximityMonitor,
    PositionPublisher,
)

__all__ = [
    "Config",
    "get_settings",
    "InputCommandSet",
    "Intent",
    "CommandSnapshot",
    "StreetScene",
    "VehicleKinematicsModel",
    "VehicleState",
    "ProximityMonitor",
    "PositionPublisher",
]
