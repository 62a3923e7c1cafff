"""
Keyboard adapter: pygame key events into an InputCommandSet.
"""

import pygame

from .commands import InputCommandSet
from ..core.logging import get_logger


class KeyboardAdapter:
    """Feeds pygame KEYDOWN/KEYUP events to an InputCommandSet."""

    def __init__(self, commands: InputCommandSet):
        self.commands = commands
        self.logger = get_logger("input.keyboard")
        self._events_handled = 0

    @staticmethod
    def key_name(key_code: int) -> str:
        """pygame key code to the name used in key binding tables."""
        return pygame.key.name(key_code)

    def handle_event(self, event) -> bool:
        """
        Apply a pygame event.

        Returns:
            True if the event changed (or re-asserted) a bound intent
        """
        event_type = getattr(event, "type", None)
        if event_type == pygame.KEYDOWN:
            is_pressed = True
        elif event_type == pygame.KEYUP:
            is_pressed = False
        else:
            return False

        handled = self.commands.on_key_transition(self.key_name(event.key), is_pressed)
        if handled:
            self._events_handled += 1
        return handled

    def on_focus_lost(self) -> None:
        """Key-up events are not delivered to an unfocused window."""
        self.commands.release_all()
        self.logger.debug("Window focus lost, all intents released")

    @property
    def events_handled(self) -> int:
        return self._events_handled
