"""
Input handling: driver intents and the keyboard adapter
"""

from .commands import (
    Intent,
    CommandSnapshot,
    InputCommandSet,
    IDLE,
    DEFAULT_KEY_BINDINGS,
    normalize_key,
    parse_key_bindings,
)
from .keyboard import KeyboardAdapter

__all__ = [
    "Intent",
    "CommandSnapshot",
    "InputCommandSet",
    "IDLE",
    "DEFAULT_KEY_BINDINGS",
    "normalize_key",
    "parse_key_bindings",
    "KeyboardAdapter",
]
