"""
Core system components: logging and error handling
"""

from .exceptions import (
    PyStreetSimError,
    ErrorSeverity,
    ConfigurationError,
    InvalidConfigValueError,
    InputError,
    KeyBindingError,
    SimulationError,
    InvalidTimestepError,
    DuplicateVehicleError,
)
from .logging import get_logger, configure_logging

__all__ = [
    "PyStreetSimError",
    "ErrorSeverity",
    "ConfigurationError",
    "InvalidConfigValueError",
    "InputError",
    "KeyBindingError",
    "SimulationError",
    "InvalidTimestepError",
    "DuplicateVehicleError",
    "get_logger",
    "configure_logging",
]
