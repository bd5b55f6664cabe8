"""Textual adapter: key translation, focus filtering and timers."""

from .controller import (
    TextualKeybindingAdapter,
    TextualTimerScheduler,
    TextualUIHooks,
    focus_target_for,
    translate_key,
)

__all__ = [
    "TextualKeybindingAdapter",
    "TextualTimerScheduler",
    "TextualUIHooks",
    "focus_target_for",
    "translate_key",
]
