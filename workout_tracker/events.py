"""Synchronous publish/subscribe used by stateful services to notify observers."""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[[str, Dict[str, Any]], None]


class EventEmitter:
    """Topic-based event emitter.

    Handlers run on the caller's thread in subscription order. A handler
    subscribed to ``"*"`` receives every topic.
    """

    def __init__(self):
        self._subs: Dict[str, List[Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register a handler and return a function that unregisters it."""
        self._subs.setdefault(topic, []).append(handler)

        def unsubscribe():
            handlers = self._subs.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, **payload: Any):
        """Deliver an event to the topic's handlers and to wildcard handlers."""
        for handler in list(self._subs.get(topic, [])) + list(self._subs.get("*", [])):
            try:
                handler(topic, payload)
            except Exception as e:
                logger.error(f"Event handler for '{topic}' failed: {e}")
