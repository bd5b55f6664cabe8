"""Runtime state machine turning key-down events into command dispatches."""

from __future__ import annotations

import asyncio
import inspect
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from graph_keys.commands.bus import EventBus
from graph_keys.runtime import telemetry
from graph_keys.runtime.timers import PollingTimerScheduler, TimerHandle, TimerScheduler

from .config import KeybindingConfig
from .filters import should_ignore
from .models import MODIFIER_KEY_NAMES, KeyDescriptor, KeyEvent
from .notation import DEFAULT_LEADER, format_descriptor
from .trie import KeymapTrie, TrieNode, compile_keymap


class MatcherState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class CommandExecutor(Protocol):
    def execute(self, command_id: str) -> Optional[Awaitable[None]]: ...


async def _await(awaitable: Awaitable[None]) -> None:
    await awaitable


class KeybindingMatcher:
    """Walks the compiled trie one key at a time.

    A key that completes a binding with no longer continuation dispatches
    immediately. A key that completes a binding which is also a prefix, or
    that only extends a prefix, arms a single ambiguity timer: if it fires
    the bound command (if any) is dispatched, otherwise the partial sequence
    is dropped. At most one timer is outstanding; every transition cancels
    the previous one first.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        config: KeybindingConfig | None = None,
        scheduler: TimerScheduler | None = None,
        bus: EventBus | None = None,
        logger_name: str | None = None,
    ) -> None:
        self._executor = executor
        self._scheduler: TimerScheduler = scheduler or PollingTimerScheduler()
        self.bus = bus
        self._logger_name = logger_name
        self._trie = KeymapTrie(leader=KeyDescriptor(key=DEFAULT_LEADER))
        self._current: TrieNode = self._trie.root
        self._pending: list[str] = []
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._tasks: set[asyncio.Task[None]] = set()
        if config is not None:
            self.initialize(config)

    # -- configuration -------------------------------------------------

    def initialize(self, config: KeybindingConfig) -> None:
        """Compile ``config`` and make it active.

        A failing compile raises and leaves the previous keymap in place.
        A successful one drops any half-typed sequence.
        """

        trie = compile_keymap(
            config.bindings,
            leader=config.leader,
            timeout_ms=config.timeout_ms,
            logger_name=self._logger_name,
        )
        self.reset_sequence()
        self._trie = trie
        self._current = trie.root
        telemetry.record_event(
            "keys.compiled",
            data={"bindings": len(trie.bindings), "timeout_ms": trie.timeout_ms},
            logger_name=self._logger_name,
        )

    @property
    def trie(self) -> KeymapTrie:
        return self._trie

    @property
    def timeout_ms(self) -> int:
        return self._trie.timeout_ms

    @property
    def leader(self) -> KeyDescriptor:
        return self._trie.leader

    def get_binding(self, notation: str) -> Optional[str]:
        return self._trie.bindings.get(notation)

    def get_all_bindings(self) -> Dict[str, str]:
        return dict(self._trie.bindings)

    # -- state ---------------------------------------------------------

    @property
    def state(self) -> MatcherState:
        if self._current is self._trie.root:
            return MatcherState.IDLE
        return MatcherState.PENDING

    @property
    def pending_keys(self) -> tuple[str, ...]:
        return tuple(self._pending)

    @property
    def pending_display(self) -> str:
        return "".join(self._pending)

    @property
    def has_timer(self) -> bool:
        return self._timer is not None

    # -- events --------------------------------------------------------

    def handle_key_down(self, event: KeyEvent) -> bool:
        """Feed one key-down event; True means the event was consumed."""

        if should_ignore(event):
            return False
        if not event.key or event.key in MODIFIER_KEY_NAMES:
            return False

        descriptor = KeyDescriptor.from_event(event)
        with telemetry.span(
            "keys::handle_key_down",
            logger_name=self._logger_name,
            component="matcher",
            metadata={"edge": descriptor.edge, "state": self.state.value},
        ) as handle:
            handled = self._advance(event, descriptor, allow_retry=True)
            handle.add_metadata("handled", handled)
            return handled

    def _advance(
        self, event: KeyEvent, descriptor: KeyDescriptor, *, allow_retry: bool
    ) -> bool:
        node = self._current.children.get(descriptor.edge)
        if node is None:
            if self._current is self._trie.root:
                return False
            # the abandoned prefix may have swallowed the start of a new binding
            self.reset_sequence()
            if allow_retry:
                return self._advance(event, descriptor, allow_retry=False)
            return False

        self._cancel_timer()
        event.consume()
        self._current = node
        self._pending.append(format_descriptor(descriptor))

        command_id = node.command_id
        if command_id is not None and node.is_leaf:
            self._dispatch(command_id)
            return True

        if command_id is not None:
            self._start_timer(partial(self._dispatch, command_id))
        else:
            self._start_timer(self._abandon)
        self._publish(
            "keys.pending",
            {
                "keys": self.pending_display,
                "command_id": command_id,
                "next": node.next_edges(),
            },
        )
        return True

    def reset_sequence(self) -> None:
        """Return to the root; safe to call when already idle."""

        had_keys = bool(self._pending)
        self._reset()
        if had_keys:
            self._publish("keys.reset", None)

    def close(self) -> None:
        self.reset_sequence()

    def _reset(self) -> None:
        self._cancel_timer()
        self._current = self._trie.root
        self._pending.clear()

    # -- timer ---------------------------------------------------------

    def _start_timer(self, action: Callable[[], None]) -> None:
        self._cancel_timer()
        generation = self._generation
        self._timer = self._scheduler.call_later(
            self._trie.timeout_ms, partial(self._on_timeout, generation, action)
        )

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            timer, self._timer = self._timer, None
            timer.cancel()

    def _on_timeout(self, generation: int, action: Callable[[], None]) -> None:
        if generation != self._generation or self._timer is None:
            return
        self._timer = None
        action()

    def _abandon(self) -> None:
        telemetry.record_event(
            "keys.abandoned",
            level="debug",
            data={"keys": self.pending_display},
            logger_name=self._logger_name,
        )
        self.reset_sequence()

    # -- dispatch ------------------------------------------------------

    def _dispatch(self, command_id: str) -> None:
        keys = self.pending_display
        self._reset()
        telemetry.record_event(
            "keys.dispatch",
            data={"command_id": command_id, "keys": keys},
            logger_name=self._logger_name,
        )
        self._publish("keys.dispatch", {"command_id": command_id, "keys": keys})
        try:
            result = self._executor.execute(command_id)
        except Exception as exc:
            self._report_failure(command_id, exc)
            return
        if inspect.isawaitable(result):
            self._run_awaitable(command_id, result)

    def _run_awaitable(self, command_id: str, awaitable: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                asyncio.run(_await(awaitable))
            except Exception as exc:
                self._report_failure(command_id, exc)
            return

        task = loop.create_task(_await(awaitable))
        self._tasks.add(task)
        task.add_done_callback(partial(self._task_done, command_id))

    def _task_done(self, command_id: str, task: "asyncio.Task[None]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._report_failure(command_id, exc)

    def _report_failure(self, command_id: str, exc: BaseException) -> None:
        telemetry.record_event(
            "keys.dispatch_failed",
            level="error",
            data={"command_id": command_id, "error": repr(exc)},
            logger_name=self._logger_name,
        )
        self._publish(
            "keys.dispatch_failed", {"command_id": command_id, "error": exc}
        )

    def _publish(self, event: str, payload: Any) -> None:
        if self.bus is not None:
            self.bus.emit(event, payload)


__all__ = ["CommandExecutor", "KeybindingMatcher", "MatcherState"]
