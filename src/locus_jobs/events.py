"""Synchronous in-process event emitter for job lifecycle notifications."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

import logging

LOGGER = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventEmitter:
    """Deliver payloads to listeners registered per event name.

    A failing listener is logged and skipped so it cannot break the emitter.
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[str(event)].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(str(event))
        if listeners and listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str, payload: Any = None) -> int:
        """Invoke the listeners for ``event`` and return how many were called."""

        listeners = list(self._listeners.get(str(event), ()))
        for listener in listeners:
            try:
                listener(payload)
            except Exception:  # noqa: BLE001 - listeners are third-party callbacks
                LOGGER.warning("Listener for %s raised", event, exc_info=True)
        return len(listeners)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(str(event), ()))


__all__ = ["EventEmitter", "Listener"]
