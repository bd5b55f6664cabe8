from __future__ import annotations

from typing import Any, Callable, List

from graph_keys.adapters.textual import (
    TextualKeybindingAdapter,
    TextualTimerScheduler,
    TextualUIHooks,
    focus_target_for,
    translate_key,
)
from graph_keys.keymaps import FocusTarget, KeybindingConfig, KeybindingMatcher
from graph_keys.runtime.timers import PollingTimerScheduler


class Input:
    """Stands in for textual.widgets.Input; only the class name matters."""


class SearchInput(Input):
    pass


class GraphCanvas:
    pass


class RecordingExecutor:
    def __init__(self) -> None:
        self.calls: List[str] = []

    def execute(self, command_id: str) -> None:
        self.calls.append(command_id)


def make_adapter(
    bindings: dict[str, str],
) -> tuple[TextualKeybindingAdapter, RecordingExecutor, PollingTimerScheduler, dict]:
    executor = RecordingExecutor()
    scheduler = PollingTimerScheduler()
    matcher = KeybindingMatcher(
        executor, config=KeybindingConfig(bindings=bindings), scheduler=scheduler
    )
    ui: dict[str, List[str]] = {"pending": [], "status": [], "log": []}
    hooks = TextualUIHooks(
        show_pending=ui["pending"].append,
        update_status=ui["status"].append,
        log=ui["log"].append,
    )
    return TextualKeybindingAdapter(matcher, hooks), executor, scheduler, ui


def test_translate_named_and_modified_keys() -> None:
    assert translate_key("space", " ").key == " "
    assert translate_key("escape").key == "Escape"
    assert translate_key("up").key == "ArrowUp"

    event = translate_key("ctrl+shift+x")
    assert (event.key, event.ctrl, event.shift) == ("x", True, True)

    alt = translate_key("alt+j")
    assert alt.alt and alt.key == "j"


def test_translate_prefers_printable_character() -> None:
    assert translate_key("plus", "+").key == "+"
    assert translate_key("minus", "-").key == "-"
    assert translate_key("J", "J").key == "J"


def test_focus_target_for_text_widgets() -> None:
    assert focus_target_for(None) is None
    assert focus_target_for(SearchInput()) == FocusTarget(tag_name="input")
    assert focus_target_for(GraphCanvas()) == FocusTarget(tag_name="graphcanvas")


def test_adapter_dispatches_and_reports_status() -> None:
    adapter, executor, _, ui = make_adapter({"gg": "graph.top", "N": "nav.prev"})

    assert adapter.handle_textual_key("g", character="g") is True
    assert ui["pending"][-1] == "g"
    assert adapter.handle_textual_key("g", character="g") is True
    assert adapter.handle_textual_key("N", character="N") is True

    assert executor.calls == ["graph.top", "nav.prev"]
    assert ui["status"] == ["graph.top", "nav.prev"]
    assert ui["pending"][-1] == ""
    assert any(line.startswith("key ->") for line in ui["log"])


def test_adapter_respects_text_entry_focus() -> None:
    adapter, executor, _, _ = make_adapter({"j": "nav.down"})

    handled = adapter.handle_textual_key("j", character="j", focused=SearchInput())

    assert handled is False
    assert executor.calls == []


def test_adapter_clears_pending_on_timeout() -> None:
    adapter, executor, scheduler, ui = make_adapter({"gg": "graph.top"})

    adapter.handle_textual_key("g", character="g")
    scheduler.force_timeout()

    assert executor.calls == []
    assert ui["pending"] == ["g", ""]


def test_textual_timer_scheduler_uses_set_timer() -> None:
    class FakeTimer:
        def __init__(self) -> None:
            self.stopped = False

        def stop(self) -> None:
            self.stopped = True

    class FakeApp:
        def __init__(self) -> None:
            self.requests: List[tuple[float, Callable[[], None]]] = []
            self.timer = FakeTimer()

        def set_timer(self, delay: float, callback: Callable[[], None]) -> Any:
            self.requests.append((delay, callback))
            return self.timer

    app = FakeApp()
    handle = TextualTimerScheduler(app).call_later(250, lambda: None)
    handle.cancel()

    assert app.requests[0][0] == 0.25
    assert app.timer.stopped is True
