"""Keybinding configuration handed to the matcher."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

from graph_keys.runtime.telemetry import env

from .notation import DEFAULT_LEADER
from .trie import DEFAULT_TIMEOUT_MS

_TIMEOUT_KEYS = ("timeout_ms", "timeoutMs", "timeout")


def default_leader() -> str:
    return env("LEADER") or DEFAULT_LEADER


def default_timeout_ms() -> int:
    raw = env("TIMEOUT_MS")
    if raw is None:
        return DEFAULT_TIMEOUT_MS
    try:
        return int(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_MS


@dataclass(frozen=True, slots=True)
class KeybindingConfig:
    """Leader key, ambiguity timeout and notation -> command id bindings."""

    bindings: Mapping[str, str] = field(default_factory=dict)
    leader: str = DEFAULT_LEADER
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        if not isinstance(self.leader, str) or not self.leader:
            raise ValueError("leader cannot be empty")
        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int):
            raise TypeError("timeout_ms must be an integer")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        for notation, command_id in self.bindings.items():
            if not isinstance(notation, str) or not notation:
                raise ValueError(f"Invalid notation {notation!r}")
            if not isinstance(command_id, str) or not command_id:
                raise ValueError(f"Binding {notation!r} needs a non-empty command id")
        object.__setattr__(self, "bindings", MappingProxyType(dict(self.bindings)))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "KeybindingConfig":
        """Build a config from loosely-typed data (parsed JSON, TOML ...)."""

        timeout: Optional[Any] = None
        for key in _TIMEOUT_KEYS:
            if data.get(key) is not None:
                timeout = data[key]
                break
        if isinstance(timeout, float) and timeout.is_integer():
            timeout = int(timeout)

        leader = data.get("leader")
        return cls(
            bindings=dict(data.get("bindings") or {}),
            leader=default_leader() if leader is None else leader,
            timeout_ms=default_timeout_ms() if timeout is None else timeout,
        )

    def with_bindings(self, bindings: Mapping[str, str]) -> "KeybindingConfig":
        merged = dict(self.bindings)
        merged.update(bindings)
        return replace(self, bindings=merged)


__all__ = ["KeybindingConfig", "default_leader", "default_timeout_ms"]
