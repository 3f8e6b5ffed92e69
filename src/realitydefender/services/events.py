"""
Event registry for poll outcomes.
"""

import threading
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Union

from realitydefender.errors import SDKError
from realitydefender.logging_config import get_logger
from realitydefender.schemas import DetectionResult

logger = get_logger(__name__)


class EventName(str, Enum):
    """Events emitted by event-driven polling."""
    RESULT = "result"
    ERROR = "error"


EventPayload = Union[DetectionResult, SDKError]
EventHandler = Callable[[EventPayload], None]


def _event_key(event: str) -> str:
    # str() of a str-mixin Enum member is "EventName.RESULT" on newer Pythons
    return event.value if isinstance(event, EventName) else str(event)


class EventRegistry:
    """
    Named-channel observer registry owned by one client instance.

    Registration is guarded by a lock. Emission snapshots the handler list
    and invokes handlers outside the lock, so a handler may register further
    handlers; those take effect from the next emission.
    """

    def __init__(self):
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

    def register(self, event: str, handler: EventHandler) -> None:
        """Append a handler for the event."""
        key = _event_key(event)
        with self._lock:
            self._handlers[key].append(handler)
        logger.debug(f"Registered handler for '{key}' event")

    def emit(self, event: str, payload: EventPayload) -> int:
        """
        Invoke every handler registered for the event, in registration order.

        Returns:
            Number of handlers invoked (0 for events nobody listens to)
        """
        key = _event_key(event)
        with self._lock:
            handlers = list(self._handlers.get(key, ()))

        for handler in handlers:
            handler(payload)
        return len(handlers)
