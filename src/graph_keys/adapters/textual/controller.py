"""Bridges Textual key events and focus into the keybinding matcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from graph_keys.commands.bus import EventBus
from graph_keys.keymaps import FocusTarget, KeyEvent, KeybindingMatcher

# Textual key names that differ from the host names used in notation.
TEXTUAL_KEY_NAMES: Dict[str, str] = {
    "space": " ",
    "tab": "Tab",
    "enter": "Enter",
    "return": "Enter",
    "escape": "Escape",
    "backspace": "Backspace",
    "delete": "Delete",
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
}

# Widget classes (matched anywhere in the MRO) that own typed text.
TEXT_ENTRY_WIDGETS: Dict[str, str] = {
    "Input": "input",
    "TextArea": "textarea",
    "Select": "select",
}


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks the adapter uses to update Textual widgets."""

    show_pending: Callable[[str], None] = _noop
    update_status: Callable[[str], None] = _noop
    log: Callable[[str], None] = _noop


def focus_target_for(widget: Any) -> Optional[FocusTarget]:
    if widget is None:
        return None
    for cls in type(widget).__mro__:
        tag = TEXT_ENTRY_WIDGETS.get(cls.__name__)
        if tag:
            return FocusTarget(tag_name=tag)
    return FocusTarget(tag_name=type(widget).__name__.lower())


def translate_key(
    key: str, character: Optional[str] = None, *, target: Any = None
) -> KeyEvent:
    """Turn a Textual key string such as ``ctrl+shift+x`` into a KeyEvent."""

    parts = key.split("+") if key != "+" else [key]
    *modifiers, base = parts
    mods = {mod.lower() for mod in modifiers}
    ctrl = "ctrl" in mods
    alt = "alt" in mods or "meta" in mods
    meta = "super" in mods

    named = TEXTUAL_KEY_NAMES.get(base.lower()) if len(base) > 1 else None
    if named is not None:
        host_key = named
    elif character and len(character) == 1 and character.isprintable() and not ctrl:
        host_key = character
    else:
        host_key = base

    return KeyEvent(
        key=host_key,
        ctrl=ctrl,
        shift="shift" in mods,
        alt=alt,
        meta=meta,
        target=target,
    )


class TextualKeybindingAdapter:
    """Feeds Textual key events to a matcher and reflects its progress."""

    def __init__(self, matcher: KeybindingMatcher, hooks: TextualUIHooks) -> None:
        self.matcher = matcher
        self.hooks = hooks
        if matcher.bus is None:
            matcher.bus = EventBus()
        self._subscribe(matcher.bus)

    def handle_textual_key(
        self,
        key: str,
        *,
        character: Optional[str] = None,
        focused: Any = None,
    ) -> bool:
        event = translate_key(key, character, target=focus_target_for(focused))
        handled = self.matcher.handle_key_down(event)
        self.hooks.log(
            f"key -> {key!r} handled={handled} pending={self.matcher.pending_display!r}"
        )
        return handled

    def _subscribe(self, bus: EventBus) -> None:
        bus.subscribe("keys.pending", self._on_pending)
        bus.subscribe("keys.reset", lambda _payload: self.hooks.show_pending(""))
        bus.subscribe("keys.dispatch", self._on_dispatch)
        bus.subscribe("keys.dispatch_failed", self._on_failure)

    def _on_pending(self, payload: object | None) -> None:
        if isinstance(payload, dict):
            self.hooks.show_pending(str(payload.get("keys", "")))

    def _on_dispatch(self, payload: object | None) -> None:
        self.hooks.show_pending("")
        if isinstance(payload, dict):
            self.hooks.update_status(str(payload.get("command_id", "")))

    def _on_failure(self, payload: object | None) -> None:
        if isinstance(payload, dict):
            self.hooks.update_status(
                f"{payload.get('command_id')} failed: {payload.get('error')}"
            )


@dataclass(slots=True)
class _TextualTimer:
    timer: Any

    def cancel(self) -> None:
        self.timer.stop()


class TextualTimerScheduler:
    """Runs ambiguity timers through ``App.set_timer``."""

    def __init__(self, app: Any) -> None:
        self._app = app

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> _TextualTimer:
        return _TextualTimer(self._app.set_timer(delay_ms / 1000.0, callback))


__all__ = [
    "TEXTUAL_KEY_NAMES",
    "TEXT_ENTRY_WIDGETS",
    "TextualKeybindingAdapter",
    "TextualTimerScheduler",
    "TextualUIHooks",
    "focus_target_for",
    "translate_key",
]
