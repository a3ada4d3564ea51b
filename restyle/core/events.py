from __future__ import annotations

import logging
from typing import Callable

from restyle.core.metadata import OperationEvent

logger = logging.getLogger(__name__)

PHASES = ("started", "succeeded", "failed")

Listener = Callable[[OperationEvent], None]


class EventBus:
    """Fire-and-forget notification of operation progress."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: OperationEvent) -> None:
        if event.phase not in PHASES:
            raise ValueError(f"Unknown event phase: {event.phase}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed for %s event", event.phase)
