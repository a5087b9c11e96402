from __future__ import annotations

"""Explicit observer interface owned by engine and history instances.

Consumers subscribe to named events and receive a single payload argument.
There is no module-level state: every :class:`EventEmitter` keeps its own
listener table, so two editors in one process never see each other's events.
"""

import logging
from typing import Any, Callable, Dict, List

__all__ = ["EventEmitter", "Listener"]

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventEmitter:
    """Small synchronous event emitter.

    Listeners are called in subscription order. A listener raising an
    exception is logged and skipped so that one faulty consumer cannot
    prevent the others from being notified.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe *listener* to *event*.

        Returns:
            A callable that removes the subscription when invoked.
        """
        self._listeners.setdefault(event, []).append(listener)

        def _unsubscribe() -> None:
            self.off(event, listener)

        return _unsubscribe

    def off(self, event: str, listener: Listener) -> bool:
        """Remove *listener* from *event*. Returns True if it was subscribed."""
        listeners = self._listeners.get(event)
        if not listeners or listener not in listeners:
            return False
        listeners.remove(listener)
        if not listeners:
            del self._listeners[event]
        return True

    def emit(self, event: str, payload: Any = None) -> None:
        # Snapshot so listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for '%s' failed", event)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self) -> None:
        self._listeners.clear()
