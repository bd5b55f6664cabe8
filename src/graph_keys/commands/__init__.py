"""Command registry and event bus the keymap engine dispatches into."""

from .bus import EventBus
from .registry import CommandContext, CommandMetadata, CommandRegistry

__all__ = [
    "CommandContext",
    "CommandMetadata",
    "CommandRegistry",
    "EventBus",
]
