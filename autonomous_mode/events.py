"""Minimal observer list for controller notifications."""

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Maps event names to ordered sets of listeners.

    ``emit`` calls listeners synchronously, in subscription order. A listener
    that raises is logged and skipped so the remaining listeners still run.
    """

    def __init__(self):
        # dict keys keep insertion order and reject duplicates
        self._listeners: dict[str, dict[Listener, None]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners.setdefault(event, {})[listener] = None
        return listener

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners is not None:
            listeners.pop(listener, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Notify listeners of ``event``. Returns True if any were registered."""
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for %r failed", event)
        return bool(listeners)
