"""
Driver intent tracking for PyStreetSim.

Raw key-down/key-up transitions are reduced to five boolean intents. The
command set keeps no history: a snapshot only says which intents are held
right now.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple

from ..core.logging import get_logger
from ..core.exceptions import KeyBindingError


class Intent(Enum):
    """The five normalized driver intents."""
    ACCELERATE = "accelerate"
    BRAKE = "brake"              # brake / reverse
    STEER_LEFT = "steer_left"
    STEER_RIGHT = "steer_right"
    HANDBRAKE = "handbrake"


@dataclass(frozen=True)
class CommandSnapshot:
    """Immutable view of the intents held during one tick."""
    accelerate: bool = False
    brake: bool = False
    steer_left: bool = False
    steer_right: bool = False
    handbrake: bool = False

    @classmethod
    def from_intents(cls, intents: Iterable[Intent]) -> 'CommandSnapshot':
        """Build a snapshot with exactly the given intents asserted."""
        return cls(**{intent.value: True for intent in intents})

    def is_active(self, intent: Intent) -> bool:
        return getattr(self, intent.value)

    def active_intents(self) -> Tuple[Intent, ...]:
        return tuple(intent for intent in Intent if self.is_active(intent))

    @property
    def is_idle(self) -> bool:
        """True when neither throttle nor brake is held."""
        return not (self.accelerate or self.brake)

    def as_tuple(self) -> Tuple[bool, bool, bool, bool, bool]:
        return (self.accelerate, self.brake, self.steer_left,
                self.steer_right, self.handbrake)


IDLE = CommandSnapshot()

DEFAULT_KEY_BINDINGS: Dict[str, Intent] = {
    "w": Intent.ACCELERATE,
    "s": Intent.BRAKE,
    "a": Intent.STEER_LEFT,
    "d": Intent.STEER_RIGHT,
    "space": Intent.HANDBRAKE,
}

# Source tag for intents asserted directly rather than through a key
_DIRECT = "<direct>"


def normalize_key(key: str) -> str:
    """Canonical key name: lower case, a literal blank becomes ``space``."""
    if key == " ":
        return "space"
    return key.strip().lower()


def parse_key_bindings(raw: Mapping[str, str]) -> Dict[str, Intent]:
    """
    Convert a ``{key: intent_name}`` mapping into a binding table.

    Raises:
        KeyBindingError: If an intent name is not one of the five intents
    """
    bindings = {}
    for key, intent_name in raw.items():
        try:
            intent = intent_name if isinstance(intent_name, Intent) else Intent(str(intent_name).lower())
        except ValueError:
            raise KeyBindingError(key, str(intent_name))
        bindings[normalize_key(key)] = intent
    return bindings


class InputCommandSet:
    """
    Current pressed/released state of the five intents.

    Several keys may drive the same intent; the intent stays asserted until
    every key holding it has been released. Keys outside the binding table
    are ignored.
    """

    def __init__(self, key_bindings: Optional[Mapping[str, Intent]] = None):
        """
        Args:
            key_bindings: Key name to Intent table, defaults to W/S/A/D/space
        """
        self.logger = get_logger("input.commands")
        bindings = DEFAULT_KEY_BINDINGS if key_bindings is None else key_bindings
        self._bindings: Dict[str, Intent] = {normalize_key(k): v for k, v in bindings.items()}
        self._held: Dict[Intent, Set[str]] = {intent: set() for intent in Intent}

    @property
    def key_bindings(self) -> Dict[str, Intent]:
        return dict(self._bindings)

    def on_key_transition(self, key: str, is_pressed: bool) -> bool:
        """
        Record a key-down or key-up.

        Repeating a transition that is already in effect changes nothing.

        Returns:
            True if the key is bound to an intent, False if it was ignored
        """
        name = normalize_key(key)
        intent = self._bindings.get(name)
        if intent is None:
            self.logger.debug("Ignoring unbound key", extra={"key": key})
            return False

        if is_pressed:
            self._held[intent].add(name)
        else:
            self._held[intent].discard(name)
        return True

    def set_intent(self, intent: Intent, is_pressed: bool) -> None:
        """Assert or release an intent directly, bypassing the key table."""
        if is_pressed:
            self._held[intent].add(_DIRECT)
        else:
            self._held[intent].discard(_DIRECT)

    def is_active(self, intent: Intent) -> bool:
        return bool(self._held[intent])

    def snapshot(self) -> CommandSnapshot:
        """Current intents as an immutable snapshot."""
        return CommandSnapshot(**{intent.value: bool(holders)
                                  for intent, holders in self._held.items()})

    def release_all(self) -> None:
        """Release every intent, e.g. when the window loses focus."""
        for holders in self._held.values():
            holders.clear()
