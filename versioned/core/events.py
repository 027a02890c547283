"""Minimal synchronous event emitter for suite observers.

Listeners are plain callables invoked in registration order on the
emitting coroutine; they must not block.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Register listeners by event name and emit events to them."""

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> "EventEmitter":
        """Register a listener for every future emission of event."""
        self._listeners[event].append(listener)
        return self

    def once(self, event: str, listener: Listener) -> "EventEmitter":
        """Register a listener that is removed after its first call."""

        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> "EventEmitter":
        """Remove a previously registered listener (no-op if absent)."""
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)
        return self

    def listener_count(self, event: str) -> int:
        """Return how many listeners are registered for event."""
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener for event with args.

        Returns:
            True if at least one listener was called.
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            listener(*args)
        if not listeners:
            logger.debug(f"No listeners for event {event!r}")
        return bool(listeners)
