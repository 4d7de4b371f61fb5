"""Typed observer used for swarm and worker event streams."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT")
Listener = Callable[[EventT], None]


class EventBus(Generic[EventT]):
    """Synchronous fan-out of events to subscribed listeners.

    Listeners run in the emitting thread, in subscription order. A failing
    listener is logged and skipped so that one subscriber cannot break the
    emitter's bookkeeping.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Listener[EventT]] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener[EventT]) -> Callable[[], None]:
        """Register a listener and return a callable that removes it."""

        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener[EventT]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()

    def emit(self, event: EventT) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                logger.exception("Listener failed on %s event stream", self.name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
