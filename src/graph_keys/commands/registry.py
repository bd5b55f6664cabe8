"""Command registry: the executor that resolved command ids are handed to."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from graph_keys.runtime import telemetry

from .bus import EventBus


@dataclass(frozen=True, slots=True)
class CommandMetadata:
    id: str
    description: str = ""
    category: str = "general"

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("command id cannot be empty")


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Passed to every handler invocation."""

    command_id: str
    args: Mapping[str, Any] = field(default_factory=dict)
    services: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", MappingProxyType(dict(self.args)))


CommandHandler = Callable[[CommandContext], Union[None, Awaitable[None]]]


@dataclass(slots=True)
class _RegisteredCommand:
    metadata: CommandMetadata
    handler: CommandHandler


class CommandRegistry:
    """Maps command ids to handlers and runs them on request."""

    def __init__(
        self,
        bus: EventBus | None = None,
        *,
        services: Optional[Mapping[str, Any]] = None,
        logger_name: str | None = None,
    ) -> None:
        self.bus = bus or EventBus(logger_name=logger_name)
        self._commands: Dict[str, _RegisteredCommand] = {}
        self._services: Mapping[str, Any] = MappingProxyType(dict(services or {}))
        self._logger_name = logger_name

    def register(self, metadata: CommandMetadata, handler: CommandHandler) -> None:
        if not callable(handler):
            raise TypeError("handler must be callable")
        if metadata.id in self._commands:
            telemetry.record_event(
                "command.overwrite",
                level="warning",
                data={"command_id": metadata.id},
                logger_name=self._logger_name,
            )
        self._commands[metadata.id] = _RegisteredCommand(metadata, handler)
        self.bus.emit("command:registered", {"command_id": metadata.id})

    def unregister(self, command_id: str) -> None:
        if self._commands.pop(command_id, None) is not None:
            self.bus.emit("command:unregistered", {"command_id": command_id})

    async def execute(
        self, command_id: str, args: Optional[Mapping[str, Any]] = None
    ) -> None:
        command = self._commands.get(command_id)
        if command is None:
            telemetry.record_event(
                "command.not_found",
                level="warning",
                data={"command_id": command_id},
                logger_name=self._logger_name,
            )
            return

        context = CommandContext(
            command_id=command_id, args=args or {}, services=self._services
        )
        self.bus.emit(
            "command:beforeExecute", {"command_id": command_id, "args": context.args}
        )
        with telemetry.span(
            f"command::{command_id}",
            logger_name=self._logger_name,
            component="commands",
            metadata={"command_id": command_id},
        ):
            try:
                result = command.handler(context)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self.bus.emit(
                    "command:afterExecute",
                    {"command_id": command_id, "success": False, "error": exc},
                )
                raise
        self.bus.emit("command:afterExecute", {"command_id": command_id, "success": True})

    def has(self, command_id: str) -> bool:
        return command_id in self._commands

    def get_metadata(self, command_id: str) -> Optional[CommandMetadata]:
        command = self._commands.get(command_id)
        return command.metadata if command else None

    def get_all_commands(self) -> list[CommandMetadata]:
        return [command.metadata for command in self._commands.values()]


__all__ = [
    "CommandContext",
    "CommandHandler",
    "CommandMetadata",
    "CommandRegistry",
]
