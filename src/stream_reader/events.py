"""Ordered multi-listener event dispatch."""

from collections.abc import Callable
import inspect
import logging
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventHub:
    """
    Register, emit and remove listeners per event name.

    Listeners run in registration order. A listener may be a plain callable or a
    coroutine function; an awaitable result is awaited before the next listener
    runs, so listeners can call back into the emitter (e.g. cancel a reader).
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> "EventHub":
        self._listeners.setdefault(event, []).append(listener)
        return self

    def off(self, event: str, listener: Listener) -> "EventHub":
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def remove_all_listeners(self, event: str | None = None) -> "EventHub":
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)
        return self

    async def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener registered for ``event`` with ``args``.

        Returns:
            bool: True if at least one listener was called.
        """
        # Snapshot so listeners removed during dispatch still receive this event.
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            result = listener(*args)
            if inspect.isawaitable(result):
                await result
        if listeners:
            logger.debug("Emitted %r to %d listener(s)", event, len(listeners))
        return bool(listeners)
