"""Textual demo that shows the keymap engine resolving graph commands."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

try:  # pragma: no cover - imported only when demo is run
    from textual import events
    from textual.app import App, ComposeResult
    from textual.widgets import Footer, Header, Input, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use graph_keys.adapters.textual.app"
    ) from exc

from graph_keys.commands import CommandMetadata, CommandRegistry
from graph_keys.keymaps import (
    KeybindingConfig,
    KeybindingMatcher,
    load_default_config,
)
from graph_keys.runtime.telemetry import configure

from .controller import TextualKeybindingAdapter, TextualTimerScheduler, TextualUIHooks


def create_demo_registry(config: KeybindingConfig) -> CommandRegistry:
    """Register a status-only handler for every bound command id."""

    registry = CommandRegistry()
    for command_id in sorted(set(config.bindings.values())):
        category = command_id.split(".", 1)[0]
        registry.register(
            CommandMetadata(id=command_id, category=category),
            lambda context: None,
        )
    return registry


class GraphKeysApp(App[None]):
    """Status line shows the typed prefix; the log shows dispatched ids."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#command-log {
		height: 1fr;
		border: round $accent;
		padding: 1 1;
	}

	#pending-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}

	#status-line {
		height: 1;
		background: $surface-darken-2;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, config: Optional[KeybindingConfig] = None) -> None:
        super().__init__()
        self.config = config or load_default_config()
        self.registry = create_demo_registry(self.config)
        self.registry.bus.subscribe("command:afterExecute", self._record_command)
        self.matcher: KeybindingMatcher | None = None
        self.adapter: TextualKeybindingAdapter | None = None
        self._lines: list[str] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="command-log")
        yield Input(placeholder="typing here bypasses the keymap", id="scratch")
        yield Static("", id="pending-line")
        yield Static("", id="status-line")
        yield Footer()

    def on_mount(self) -> None:
        self.matcher = KeybindingMatcher(
            self.registry,
            config=self.config,
            scheduler=TextualTimerScheduler(self),
        )
        hooks = TextualUIHooks(
            show_pending=self._show_pending,
            update_status=self._update_status,
        )
        self.adapter = TextualKeybindingAdapter(self.matcher, hooks)
        self.set_focus(None)
        self._update_status(f"{len(self.config.bindings)} bindings loaded")

    def on_unmount(self) -> None:
        if self.matcher:
            self.matcher.close()

    def on_key(self, event: events.Key) -> None:
        if not self.adapter or event.key in {"ctrl+c", "ctrl+q"}:
            return
        handled = self.adapter.handle_textual_key(
            event.key, character=event.character, focused=self.focused
        )
        if handled:
            event.stop()
            event.prevent_default()

    def _record_command(self, payload: object | None) -> None:
        if not isinstance(payload, dict):
            return
        mark = "ok" if payload.get("success") else "failed"
        self._lines.append(f"{payload.get('command_id')} [{mark}]")
        self.query_one("#command-log", Static).update("\n".join(self._lines[-50:]))

    def _show_pending(self, keys: str) -> None:
        self.query_one("#pending-line", Static).update(keys)

    def _update_status(self, status: str) -> None:
        self.query_one("#status-line", Static).update(status)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the graph keymap demo.")
    parser.add_argument(
        "--leader",
        default=None,
        help="Leader key, as a character or notation such as '<Space>'",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Ambiguity timeout for pending sequences (default: 500)",
    )
    parser.add_argument(
        "--bind",
        action="append",
        default=[],
        metavar="NOTATION=COMMAND",
        help="Extra binding, may be repeated",
    )
    parser.add_argument(
        "--log-preset",
        default="quiet",
        help="Telemetry preset: development, production or quiet",
    )
    return parser.parse_args(argv)


def _extra_bindings(pairs: Sequence[str]) -> dict[str, str]:
    extra: dict[str, str] = {}
    for pair in pairs:
        notation, sep, command_id = pair.partition("=")
        if not sep:
            raise SystemExit(f"--bind expects NOTATION=COMMAND, got {pair!r}")
        extra[notation] = command_id
    return extra


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    configure(preset=args.log_preset)
    config = load_default_config(
        leader=args.leader,
        timeout_ms=args.timeout_ms,
        extra_bindings=_extra_bindings(args.bind),
    )
    GraphKeysApp(config).run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()


__all__ = ["GraphKeysApp", "create_demo_registry", "main"]
