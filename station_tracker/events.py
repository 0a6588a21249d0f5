"""
Event emission for presentation layers.

Consumers subscribe to named events instead of assigning callback fields, so
any number of listeners (a UI, the CLI logger, a test) can observe a tracker.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    DATA_UPDATE = "data_update"  # StationData
    STATUS = "status"  # Status
    LABEL_UPDATE = "label_update"  # str
    ORBIT_PATH = "orbit_path"  # OrbitPath


class EventBus:
    def __init__(self):
        self._handlers: Dict[EventType, List[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event: EventType, handler: Callable[[Any], None]) -> Callable[[], None]:
        """Register a handler; returns a function that unsubscribes it."""
        self._handlers[event].append(handler)

        def unsubscribe():
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    def emit(self, event: EventType, payload: Any) -> None:
        for handler in list(self._handlers[event]):
            try:
                handler(payload)
            except Exception:
                # A broken listener must not stop the tracker or other listeners
                logger.exception(f"Handler for {event.value} raised")
