"""Synchronous publish/subscribe bus for engine events."""
from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Iterable, List

logger = logging.getLogger(__name__)

EventHandler = Callable[[object], None]


class EventBus:
    """Delivers events to subscribers in subscription order."""

    def __init__(self, history_limit: int = 100) -> None:
        self._handlers: List[EventHandler] = []
        self._history: Deque[object] = deque(maxlen=max(0, history_limit))

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register a handler and return a function that removes it."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: object) -> None:
        self._history.append(event)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("event_handler_failed event=%s", type(event).__name__)

    def publish_all(self, events: Iterable[object]) -> None:
        for event in events:
            self.publish(event)

    @property
    def history(self) -> List[object]:
        return list(self._history)

    def history_of(self, event_type: type) -> List[object]:
        return [event for event in self._history if isinstance(event, event_type)]
