"""Minimal publish/subscribe bus shared by the matcher and command registry."""

from __future__ import annotations

from typing import Callable, Dict

from graph_keys.runtime import telemetry

Subscriber = Callable[[object], None]


class EventBus:
    """Fans a named event out to every subscriber, in subscription order."""

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._subscribers: Dict[str, list[Subscriber]] = {}
        self._logger_name = logger_name

    def subscribe(self, event: str, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; the returned function unsubscribes it."""

        self._subscribers.setdefault(event, []).append(callback)
        return lambda: self.unsubscribe(event, callback)

    def unsubscribe(self, event: str, callback: Subscriber) -> None:
        callbacks = self._subscribers.get(event)
        if not callbacks:
            return
        try:
            callbacks.remove(callback)
        except ValueError:
            return
        if not callbacks:
            del self._subscribers[event]

    def emit(self, event: str, payload: object | None = None) -> None:
        for callback in list(self._subscribers.get(event, ())):
            try:
                callback(payload)
            except Exception as exc:
                telemetry.record_event(
                    "bus.subscriber_failed",
                    level="error",
                    data={"bus_event": event, "error": repr(exc)},
                    logger_name=self._logger_name,
                )

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, ()))


__all__ = ["EventBus", "Subscriber"]
