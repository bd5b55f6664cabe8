"""Stock keybindings for the graph view."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from .config import KeybindingConfig, default_leader, default_timeout_ms

DEFAULT_BINDINGS: Mapping[str, str] = MappingProxyType(
    {
        "k": "navigation.up",
        "j": "navigation.down",
        "h": "navigation.left",
        "l": "navigation.right",
        "w": "navigation.clockwiseConnected",
        "b": "navigation.counterClockwiseConnected",
        "n": "navigation.clockwiseActive",
        "N": "navigation.counterClockwiseActive",
        "<Space>": "graph.toggleSelect",
        "+": "graph.zoomIn",
        "-": "graph.zoomOut",
    }
)


def load_default_config(
    *,
    leader: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    include: Iterable[str] | None = None,
    exclude: Iterable[str] | None = None,
    extra_bindings: Mapping[str, str] | None = None,
) -> KeybindingConfig:
    """Default bindings, optionally filtered by command id and extended."""

    include_set = set(include) if include is not None else None
    exclude_set = set(exclude or ())

    bindings = {
        notation: command_id
        for notation, command_id in DEFAULT_BINDINGS.items()
        if (include_set is None or command_id in include_set)
        and command_id not in exclude_set
    }
    if extra_bindings:
        bindings.update(extra_bindings)

    return KeybindingConfig(
        bindings=bindings,
        leader=default_leader() if leader is None else leader,
        timeout_ms=default_timeout_ms() if timeout_ms is None else timeout_ms,
    )


__all__ = ["DEFAULT_BINDINGS", "load_default_config"]
