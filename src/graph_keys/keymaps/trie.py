"""Prefix trie compiled from notation -> command id bindings."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Union

from graph_keys.runtime.telemetry import span

from .models import KeyDescriptor, KeySequence
from .notation import DEFAULT_LEADER, NotationParser

DEFAULT_TIMEOUT_MS = 500


class KeybindingConflictError(RuntimeError):
    """Raised when two bindings cannot coexist in one trie."""

    def __init__(self, notation: str, conflicting: str, reason: str) -> None:
        super().__init__(
            f"Keybinding conflict: {notation!r} {reason} {conflicting!r}"
        )
        self.notation = notation
        self.conflicting = conflicting


@dataclass(slots=True)
class TrieNode:
    """One typed prefix; ``command_id`` is set where a binding ends."""

    children: Dict[str, "TrieNode"] = field(default_factory=dict)
    command_id: Optional[str] = None

    def child(self, edge: str) -> "TrieNode":
        return self.children.setdefault(edge, TrieNode())

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def next_edges(self) -> tuple[str, ...]:
        return tuple(sorted(self.children))


@dataclass(slots=True)
class KeymapTrie:
    """Compiled keymap. Read-only once ``compile_keymap`` returns it."""

    leader: KeyDescriptor
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    bindings: Mapping[str, str] = field(default_factory=dict)
    root: TrieNode = field(default_factory=TrieNode)

    def insert(self, sequence: KeySequence, command_id: str) -> TrieNode:
        node = self.root
        for descriptor in sequence:
            node = node.child(descriptor.edge)
        node.command_id = command_id
        return node

    def lookup(self, sequence: Iterable[KeyDescriptor]) -> Optional[TrieNode]:
        node = self.root
        for descriptor in sequence:
            found = node.children.get(descriptor.edge)
            if found is None:
                return None
            node = found
        return node

    def node_count(self) -> int:
        count = 0
        stack = [self.root]
        while stack:
            current = stack.pop()
            count += 1
            stack.extend(current.children.values())
        return count


def _check_conflicts(parsed: list[tuple[str, KeySequence, str]]) -> None:
    chord_heads: Dict[str, str] = {}
    for notation, sequence, _ in parsed:
        if len(sequence) > 1:
            chord_heads.setdefault(sequence[0].edge, notation)

    complete: Dict[tuple[str, ...], tuple[str, str]] = {}
    for notation, sequence, command_id in parsed:
        if len(sequence) == 1:
            head = chord_heads.get(sequence[0].edge)
            if head is not None:
                raise KeybindingConflictError(
                    notation, head, "is a single key that also starts"
                )

        edges = tuple(descriptor.edge for descriptor in sequence)
        previous = complete.setdefault(edges, (notation, command_id))
        if previous[1] != command_id:
            raise KeybindingConflictError(
                notation, previous[0], "binds the same keys as"
            )


def compile_keymap(
    bindings: Mapping[str, str],
    *,
    leader: Union[str, KeyDescriptor] = DEFAULT_LEADER,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    logger_name: str | None = None,
) -> KeymapTrie:
    """Parse and validate every binding, then build the trie.

    Conflicts are checked across the whole mapping before anything is
    inserted, so the reported pair does not depend on iteration order.
    """

    with span(
        "keymaps::compile",
        logger_name=logger_name,
        component="keymaps",
        metadata={"bindings": len(bindings), "timeout_ms": timeout_ms},
    ) as handle:
        parser = NotationParser(leader)
        parsed: list[tuple[str, KeySequence, str]] = []
        for notation, command_id in bindings.items():
            if not isinstance(command_id, str) or not command_id:
                raise ValueError(f"Binding {notation!r} needs a non-empty command id")
            parsed.append((notation, parser.parse(notation), command_id))

        _check_conflicts(parsed)

        trie = KeymapTrie(
            leader=parser.leader,
            timeout_ms=timeout_ms,
            bindings=MappingProxyType(dict(bindings)),
        )
        for _, sequence, command_id in parsed:
            trie.insert(sequence, command_id)
        handle.add_metadata("nodes", trie.node_count())
        return trie


__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "KeybindingConflictError",
    "KeymapTrie",
    "TrieNode",
    "compile_keymap",
]
