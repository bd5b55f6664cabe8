"""Value objects shared by the notation parser, trie and matcher."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

# Names accepted inside ``<...>`` mapped to the host's key identifiers.
SPECIAL_KEYS: Mapping[str, str] = MappingProxyType(
    {
        "space": " ",
        "tab": "Tab",
        "enter": "Enter",
        "escape": "Escape",
        "esc": "Escape",
        "bs": "Backspace",
        "backspace": "Backspace",
        "del": "Delete",
        "delete": "Delete",
        "up": "ArrowUp",
        "down": "ArrowDown",
        "left": "ArrowLeft",
        "right": "ArrowRight",
        "lt": "<",
        "gt": ">",
    }
)

# Preferred spelling when rendering a key back to notation.
DISPLAY_NAMES: Mapping[str, str] = MappingProxyType(
    {
        " ": "Space",
        "Tab": "Tab",
        "Enter": "Enter",
        "Escape": "Esc",
        "Backspace": "BS",
        "Delete": "Del",
        "ArrowUp": "Up",
        "ArrowDown": "Down",
        "ArrowLeft": "Left",
        "ArrowRight": "Right",
        "<": "lt",
        ">": "gt",
    }
)

# Key-downs of a modifier on its own never advance a sequence.
MODIFIER_KEY_NAMES = frozenset(
    {"Shift", "Control", "Alt", "AltGraph", "Meta", "OS", "Super", "CapsLock"}
)

MODIFIER_LETTERS: Mapping[str, str] = MappingProxyType(
    {"C": "ctrl", "S": "shift", "A": "alt", "M": "alt", "D": "meta"}
)

# Fixed order used by both the edge string and the display form.
MODIFIER_ORDER: Tuple[Tuple[str, str], ...] = (
    ("ctrl", "C"),
    ("shift", "S"),
    ("alt", "A"),
    ("meta", "D"),
)


def is_ascii_upper(char: str) -> bool:
    return len(char) == 1 and "A" <= char <= "Z"


@dataclass(frozen=True, slots=True)
class KeyDescriptor:
    """One key press: a key name plus four independent modifiers."""

    key: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    meta: bool = False

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("key cannot be empty")

    @property
    def modifiers(self) -> tuple[str, ...]:
        return tuple(name for name, _ in MODIFIER_ORDER if getattr(self, name))

    @property
    def edge(self) -> str:
        """Canonical trie edge, e.g. ``CS-x`` or ``j``."""

        letters = "".join(
            letter for name, letter in MODIFIER_ORDER if getattr(self, name)
        )
        key = self.key.lower()
        return f"{letters}-{key}" if letters else key

    @classmethod
    def from_event(cls, event: "KeyEvent") -> "KeyDescriptor":
        key = event.key
        shift = event.shift
        if is_ascii_upper(key):
            key = key.lower()
            shift = True
        elif len(key) == 1 and key != " " and not key.isalpha():
            # shift already produced this character ("+" on most layouts)
            shift = False
        return cls(
            key=key,
            ctrl=event.ctrl,
            shift=shift,
            alt=event.alt,
            meta=event.meta,
        )


KeySequence = Tuple[KeyDescriptor, ...]


@dataclass(frozen=True, slots=True)
class FocusTarget:
    """Describes the control that owns keyboard focus."""

    tag_name: str = ""
    is_content_editable: bool = False


@dataclass(slots=True)
class KeyEvent:
    """A key-down event as delivered by the host UI."""

    key: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False
    meta: bool = False
    target: Optional[Any] = None
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    def consume(self) -> None:
        self.prevent_default()
        self.stop_propagation()

    @property
    def consumed(self) -> bool:
        return self.default_prevented and self.propagation_stopped


__all__ = [
    "DISPLAY_NAMES",
    "FocusTarget",
    "KeyDescriptor",
    "KeyEvent",
    "KeySequence",
    "MODIFIER_KEY_NAMES",
    "MODIFIER_LETTERS",
    "MODIFIER_ORDER",
    "SPECIAL_KEYS",
    "is_ascii_upper",
]
