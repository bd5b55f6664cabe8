from __future__ import annotations

import asyncio
from typing import Any, List, Mapping, Optional

import pytest

from graph_keys.commands import EventBus
from graph_keys.keymaps import (
    FocusTarget,
    KeyEvent,
    KeybindingConfig,
    KeybindingConflictError,
    KeybindingMatcher,
    MatcherState,
)
from graph_keys.runtime.timers import PollingTimerScheduler


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms / 1000.0


class RecordingExecutor:
    def __init__(self, fail_on: Optional[str] = None) -> None:
        self.calls: List[str] = []
        self.fail_on = fail_on

    def execute(self, command_id: str) -> None:
        self.calls.append(command_id)
        if command_id == self.fail_on:
            raise RuntimeError(f"{command_id} exploded")


def make_matcher(
    bindings: Mapping[str, str],
    *,
    leader: str = " ",
    timeout_ms: int = 500,
    executor: Any = None,
    bus: EventBus | None = None,
) -> tuple[KeybindingMatcher, Any, PollingTimerScheduler, FakeClock]:
    clock = FakeClock()
    scheduler = PollingTimerScheduler(clock=clock)
    executor = executor or RecordingExecutor()
    matcher = KeybindingMatcher(
        executor,
        config=KeybindingConfig(bindings=bindings, leader=leader, timeout_ms=timeout_ms),
        scheduler=scheduler,
        bus=bus,
    )
    return matcher, executor, scheduler, clock


def press(matcher: KeybindingMatcher, key: str, **kwargs: Any) -> tuple[bool, KeyEvent]:
    event = KeyEvent(key=key, **kwargs)
    return matcher.handle_key_down(event), event


def test_single_key_dispatches_immediately() -> None:
    matcher, executor, scheduler, _ = make_matcher({"j": "nav.down"})

    handled, event = press(matcher, "j")

    assert handled is True
    assert event.consumed
    assert executor.calls == ["nav.down"]
    assert scheduler.pending == 0
    assert matcher.state is MatcherState.IDLE


def test_unbound_key_at_root_is_declined() -> None:
    matcher, executor, _, _ = make_matcher({"j": "nav.down"})

    handled, event = press(matcher, "x")

    assert handled is False
    assert not event.default_prevented
    assert executor.calls == []


def test_chord_completes_on_second_key() -> None:
    matcher, executor, scheduler, _ = make_matcher({"gg": "graph.top"})

    handled, _ = press(matcher, "g")
    assert handled is True
    assert matcher.state is MatcherState.PENDING
    assert matcher.pending_display == "g"
    assert scheduler.pending == 1

    handled, _ = press(matcher, "g")
    assert handled is True
    assert executor.calls == ["graph.top"]
    assert scheduler.pending == 0
    assert matcher.pending_keys == ()


def test_prefix_binding_waits_then_dispatches_on_timeout() -> None:
    matcher, executor, scheduler, clock = make_matcher(
        {"gd": "graph.detail", "gdd": "graph.deepDetail"}
    )

    press(matcher, "g")
    press(matcher, "d")
    assert executor.calls == []

    clock.advance(400)
    assert scheduler.process_timeouts() == 0
    assert executor.calls == []

    clock.advance(200)
    assert scheduler.process_timeouts() == 1
    assert executor.calls == ["graph.detail"]
    assert matcher.state is MatcherState.IDLE


def test_prefix_binding_superseded_by_longer_chord() -> None:
    matcher, executor, scheduler, clock = make_matcher(
        {"gd": "graph.detail", "gdd": "graph.deepDetail"}
    )

    press(matcher, "g")
    press(matcher, "d")
    clock.advance(200)
    press(matcher, "d")

    assert executor.calls == ["graph.deepDetail"]
    clock.advance(1000)
    assert scheduler.process_timeouts() == 0
    assert executor.calls == ["graph.deepDetail"]


def test_partial_sequence_is_dropped_silently_on_timeout() -> None:
    matcher, executor, scheduler, clock = make_matcher({"gg": "graph.top"})

    press(matcher, "g")
    clock.advance(600)
    scheduler.process_timeouts()

    assert executor.calls == []
    assert matcher.state is MatcherState.IDLE
    assert matcher.pending_display == ""


def test_abandoned_sequence_retries_key_from_root() -> None:
    matcher, executor, scheduler, _ = make_matcher({"gg": "graph.top", "j": "nav.down"})

    press(matcher, "g")
    handled, event = press(matcher, "j")

    assert handled is True
    assert event.consumed
    assert executor.calls == ["nav.down"]
    assert scheduler.pending == 0


def test_abandoned_sequence_with_unknown_key_resets() -> None:
    matcher, executor, scheduler, _ = make_matcher({"gg": "graph.top"})

    press(matcher, "g")
    handled, _ = press(matcher, "x")

    assert handled is False
    assert matcher.state is MatcherState.IDLE
    assert scheduler.pending == 0
    assert executor.calls == []


def test_retry_from_root_can_start_a_new_chord() -> None:
    matcher, _, _, _ = make_matcher({"gg": "graph.top", "dd": "graph.delete"})

    press(matcher, "g")
    handled, _ = press(matcher, "d")

    assert handled is True
    assert matcher.pending_display == "d"


def test_leader_sequence_matches_physical_keys() -> None:
    matcher, executor, _, _ = make_matcher({"<leader>x": "graph.close"}, leader=";")

    press(matcher, ";")
    press(matcher, "x")

    assert executor.calls == ["graph.close"]


def test_shifted_letter_and_modifiers() -> None:
    matcher, executor, _, _ = make_matcher(
        {"N": "nav.prev", "<C-w>l": "window.right", "+": "graph.zoomIn"}
    )

    press(matcher, "N", shift=True)
    press(matcher, "w", ctrl=True)
    press(matcher, "l")
    press(matcher, "+", shift=True)

    assert executor.calls == ["nav.prev", "window.right", "graph.zoomIn"]


def test_pending_display_uses_notation() -> None:
    matcher, _, _, _ = make_matcher({"<C-w><Space>x": "cmd"})

    press(matcher, "w", ctrl=True)
    press(matcher, " ")

    assert matcher.pending_keys == ("<C-w>", "<Space>")
    assert matcher.pending_display == "<C-w><Space>"


@pytest.mark.parametrize(
    "target",
    [
        FocusTarget(tag_name="input"),
        FocusTarget(tag_name="TEXTAREA"),
        FocusTarget(tag_name="select"),
        FocusTarget(tag_name="div", is_content_editable=True),
    ],
)
def test_text_entry_focus_is_ignored(target: FocusTarget) -> None:
    matcher, executor, scheduler, _ = make_matcher({"gg": "graph.top", "j": "nav.down"})
    press(matcher, "g")

    handled, event = press(matcher, "j", target=target)

    assert handled is False
    assert not event.default_prevented
    assert executor.calls == []
    assert matcher.pending_display == "g"
    assert scheduler.pending == 1


def test_non_text_focus_is_matched() -> None:
    matcher, executor, _, _ = make_matcher({"j": "nav.down"})

    handled, _ = press(matcher, "j", target=FocusTarget(tag_name="canvas"))

    assert handled is True
    assert executor.calls == ["nav.down"]


def test_reset_is_idempotent() -> None:
    matcher, _, scheduler, _ = make_matcher({"gg": "graph.top"})

    matcher.reset_sequence()
    matcher.reset_sequence()
    press(matcher, "g")
    matcher.reset_sequence()
    matcher.reset_sequence()

    assert matcher.state is MatcherState.IDLE
    assert scheduler.pending == 0
    assert not matcher.has_timer


def test_executor_failure_is_logged_not_raised() -> None:
    executor = RecordingExecutor(fail_on="nav.down")
    bus = EventBus()
    failures: List[object] = []
    bus.subscribe("keys.dispatch_failed", failures.append)
    matcher, _, _, _ = make_matcher(
        {"j": "nav.down", "k": "nav.up"}, executor=executor, bus=bus
    )

    handled, _ = press(matcher, "j")
    press(matcher, "k")

    assert handled is True
    assert executor.calls == ["nav.down", "nav.up"]
    assert len(failures) == 1
    assert matcher.state is MatcherState.IDLE


def test_async_executor_without_running_loop() -> None:
    executed: List[str] = []

    class AsyncExecutor:
        async def execute(self, command_id: str) -> None:
            executed.append(command_id)

    matcher, _, _, _ = make_matcher({"j": "nav.down"}, executor=AsyncExecutor())

    press(matcher, "j")

    assert executed == ["nav.down"]


def test_async_executor_runs_as_task_inside_loop() -> None:
    executed: List[str] = []
    failures: List[object] = []

    class AsyncExecutor:
        async def execute(self, command_id: str) -> None:
            await asyncio.sleep(0)
            if command_id == "boom":
                raise RuntimeError("boom")
            executed.append(command_id)

    bus = EventBus()
    bus.subscribe("keys.dispatch_failed", failures.append)
    matcher, _, _, _ = make_matcher(
        {"j": "nav.down", "x": "boom"}, executor=AsyncExecutor(), bus=bus
    )

    async def scenario() -> None:
        assert press(matcher, "j")[0] is True
        assert press(matcher, "x")[0] is True
        assert executed == []
        for _ in range(5):
            await asyncio.sleep(0)

    asyncio.run(scenario())

    assert executed == ["nav.down"]
    assert len(failures) == 1


def test_recompile_replaces_bindings_and_drops_pending() -> None:
    matcher, executor, scheduler, _ = make_matcher({"gg": "graph.top"})
    press(matcher, "g")

    matcher.initialize(KeybindingConfig(bindings={"g": "graph.go"}))

    assert matcher.state is MatcherState.IDLE
    assert scheduler.pending == 0
    press(matcher, "g")
    assert executor.calls == ["graph.go"]
    assert matcher.get_all_bindings() == {"g": "graph.go"}


def test_failed_recompile_keeps_previous_keymap() -> None:
    matcher, executor, _, _ = make_matcher({"j": "nav.down"}, timeout_ms=300)

    with pytest.raises(KeybindingConflictError):
        matcher.initialize(KeybindingConfig(bindings={"g": "a", "gg": "b"}))

    assert matcher.get_binding("j") == "nav.down"
    assert matcher.timeout_ms == 300
    press(matcher, "j")
    assert executor.calls == ["nav.down"]


def test_diagnostics_are_read_only() -> None:
    matcher, _, _, _ = make_matcher({"j": "nav.down"})

    snapshot = matcher.get_all_bindings()
    snapshot["k"] = "nav.up"

    assert matcher.get_binding("k") is None
    assert matcher.get_binding("j") == "nav.down"


def test_bus_reports_progress() -> None:
    bus = EventBus()
    seen: List[tuple[str, object]] = []
    for name in ("keys.pending", "keys.dispatch", "keys.reset"):
        bus.subscribe(name, lambda payload, name=name: seen.append((name, payload)))
    matcher, _, _, _ = make_matcher({"gg": "graph.top"}, bus=bus)

    press(matcher, "g")
    press(matcher, "g")
    press(matcher, "g")
    matcher.reset_sequence()

    names = [name for name, _ in seen]
    assert names == ["keys.pending", "keys.dispatch", "keys.pending", "keys.reset"]
    assert seen[1][1] == {"command_id": "graph.top", "keys": "gg"}


def test_close_cancels_outstanding_timer() -> None:
    matcher, executor, scheduler, clock = make_matcher(
        {"gd": "graph.detail", "gdd": "graph.deepDetail"}
    )
    press(matcher, "g")
    press(matcher, "d")

    matcher.close()
    clock.advance(1000)

    assert scheduler.process_timeouts() == 0
    assert executor.calls == []


def test_bare_modifier_press_keeps_sequence_alive() -> None:
    matcher, executor, _, _ = make_matcher({"gG": "graph.bottom"})

    press(matcher, "g")
    handled, _ = press(matcher, "Shift", shift=True)
    press(matcher, "G", shift=True)

    assert handled is False
    assert executor.calls == ["graph.bottom"]
