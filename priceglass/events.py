"""
In-process broadcast of state changes.
Subscribers are called synchronously in subscription order.
"""
from collections import defaultdict
from typing import Any, Callable, Dict, List

from priceglass.logger import logger

COUNTRY_CHANGED = "country-changed"
LOCATION_CHANGED = "location-changed"

Listener = Callable[[Any], None]


class EventBus:
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register a listener, returns a callable that unsubscribes it."""
        self._listeners[event].append(listener)

        def unsubscribe():
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    def publish(self, event: str, detail: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(detail)
            except Exception as e:
                # one broken subscriber must not stop the others
                logger.error(f"Listener for {event} failed: {e}", exc_info=True)


# global bus
event_bus = EventBus()
