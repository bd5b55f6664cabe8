"""Vim-style key notation: parsing into descriptors and rendering back.

Grammar, scanned left to right without backtracking::

    notation := token+
    token    := CHAR | "<" content ">"
    content  := "leader" | SPECIAL | MOD ("-" MOD)* "-" KEY

An uppercase ASCII letter outside brackets means the lowercase key with
shift held. ``SPECIAL`` names (``Space``, ``Esc``, ``Up`` ...) are matched
case-insensitively; ``MOD`` is one of ``C``, ``S``, ``A``/``M``, ``D``.
"""

from __future__ import annotations

from typing import Iterable, Union

from .models import (
    DISPLAY_NAMES,
    MODIFIER_LETTERS,
    MODIFIER_ORDER,
    SPECIAL_KEYS,
    KeyDescriptor,
    KeySequence,
    is_ascii_upper,
)

DEFAULT_LEADER = " "


class NotationError(ValueError):
    """Raised for malformed key notation."""

    def __init__(self, message: str, *, notation: str, fragment: str) -> None:
        super().__init__(f"{message}: {fragment!r} in {notation!r}")
        self.notation = notation
        self.fragment = fragment


def _literal(char: str) -> KeyDescriptor:
    if is_ascii_upper(char):
        return KeyDescriptor(key=char.lower(), shift=True)
    return KeyDescriptor(key=char)


class NotationParser:
    """Parses notation strings, substituting ``<leader>`` with ``leader``."""

    def __init__(self, leader: Union[str, KeyDescriptor] = DEFAULT_LEADER) -> None:
        if isinstance(leader, KeyDescriptor):
            self.leader = leader
        else:
            self.leader = self._parse_leader(leader)

    def parse(self, notation: str) -> KeySequence:
        if not notation:
            raise NotationError("empty notation", notation=notation, fragment="")

        result: list[KeyDescriptor] = []
        index = 0
        while index < len(notation):
            char = notation[index]
            if char != "<":
                result.append(_literal(char))
                index += 1
                continue
            close = notation.find(">", index + 1)
            if close == -1:
                raise NotationError(
                    "unclosed bracket", notation=notation, fragment=notation[index:]
                )
            content = notation[index + 1 : close]
            result.append(self._parse_bracket(content, notation))
            index = close + 1
        return tuple(result)

    def _parse_bracket(self, content: str, notation: str) -> KeyDescriptor:
        fragment = f"<{content}>"
        if not content:
            raise NotationError("empty key name", notation=notation, fragment=fragment)

        if content.lower() == "leader":
            return self.leader

        special = SPECIAL_KEYS.get(content.lower())
        if special is not None:
            return KeyDescriptor(key=special)

        if "-" not in content:
            raise NotationError("unknown key name", notation=notation, fragment=fragment)

        if content.endswith("--"):
            prefix, key = content[:-2], "-"
        else:
            prefix, _, key = content.rpartition("-")

        flags = {"ctrl": False, "shift": False, "alt": False, "meta": False}
        for letter in prefix.split("-"):
            name = MODIFIER_LETTERS.get(letter.upper())
            if name is None:
                raise NotationError(
                    f"unknown modifier {letter!r}", notation=notation, fragment=fragment
                )
            flags[name] = True

        return KeyDescriptor(key=self._modified_key(key, notation, fragment), **flags)

    @staticmethod
    def _modified_key(key: str, notation: str, fragment: str) -> str:
        if not key:
            raise NotationError("missing key", notation=notation, fragment=fragment)
        if len(key) == 1:
            return key.lower() if is_ascii_upper(key) else key
        special = SPECIAL_KEYS.get(key.lower())
        if special is None:
            raise NotationError("unknown key name", notation=notation, fragment=fragment)
        return special

    @staticmethod
    def _parse_leader(leader: str) -> KeyDescriptor:
        if len(leader) == 1:
            return _literal(leader)
        sequence = NotationParser(KeyDescriptor(key=DEFAULT_LEADER)).parse(leader)
        if len(sequence) != 1:
            raise NotationError(
                "leader must be a single key", notation=leader, fragment=leader
            )
        return sequence[0]


def parse_notation(
    notation: str, *, leader: Union[str, KeyDescriptor] = DEFAULT_LEADER
) -> KeySequence:
    return NotationParser(leader).parse(notation)


def format_descriptor(descriptor: KeyDescriptor) -> str:
    """Render ``descriptor`` as notation that parses back to the same key."""

    key = descriptor.key
    letters = [letter for name, letter in MODIFIER_ORDER if getattr(descriptor, name)]
    if letters:
        return f"<{'-'.join(letters)}-{DISPLAY_NAMES.get(key, key)}>"
    if key in DISPLAY_NAMES:
        return f"<{DISPLAY_NAMES[key]}>"
    if len(key) > 1:
        return f"<{key}>"
    return key


def format_sequence(sequence: Iterable[KeyDescriptor]) -> str:
    return "".join(format_descriptor(descriptor) for descriptor in sequence)


__all__ = [
    "DEFAULT_LEADER",
    "NotationError",
    "NotationParser",
    "format_descriptor",
    "format_sequence",
    "parse_notation",
]
