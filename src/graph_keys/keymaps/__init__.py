"""Key notation parsing, trie compilation and runtime matching."""

from .config import KeybindingConfig
from .defaults import DEFAULT_BINDINGS, load_default_config
from .filters import TEXT_ENTRY_TAGS, should_ignore
from .matcher import CommandExecutor, KeybindingMatcher, MatcherState
from .models import FocusTarget, KeyDescriptor, KeyEvent, KeySequence
from .notation import (
    NotationError,
    NotationParser,
    format_descriptor,
    format_sequence,
    parse_notation,
)
from .trie import KeybindingConflictError, KeymapTrie, TrieNode, compile_keymap

__all__ = [
    "CommandExecutor",
    "DEFAULT_BINDINGS",
    "FocusTarget",
    "KeyDescriptor",
    "KeyEvent",
    "KeySequence",
    "KeybindingConfig",
    "KeybindingConflictError",
    "KeybindingMatcher",
    "KeymapTrie",
    "MatcherState",
    "NotationError",
    "NotationParser",
    "TEXT_ENTRY_TAGS",
    "TrieNode",
    "compile_keymap",
    "format_descriptor",
    "format_sequence",
    "load_default_config",
    "parse_notation",
    "should_ignore",
]
