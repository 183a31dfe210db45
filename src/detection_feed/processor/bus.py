"""
Event Bus - in-process publish/subscribe for stream events and merged records.

Consumers subscribe to a named channel and never see the stream client.
Subscribing to WILDCARD receives every publish as (channel, payload).
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

WILDCARD = "*"

Handler = Callable[[Any], None]


class EventBus:
    """
    Named-channel fan-out with an explicit subscriber registry.

    Handlers run synchronously on the publishing thread, in subscription
    order. A failing handler is logged and skipped; the rest still run.
    """

    def __init__(self):
        self._subscribers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, channel: str, handler: Handler) -> Callable[[], None]:
        """
        Register ``handler`` for ``channel``.

        Args:
            channel: Channel name, or WILDCARD for everything
            handler: Called with the payload (WILDCARD: with (channel, payload))

        Returns:
            Zero-argument function that removes this subscription
        """
        with self._lock:
            self._subscribers[channel].append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(channel, handler)

        return unsubscribe

    def unsubscribe(self, channel: str, handler: Handler) -> bool:
        with self._lock:
            handlers = self._subscribers.get(channel)
            if not handlers or handler not in handlers:
                return False
            handlers.remove(handler)
            if not handlers:
                del self._subscribers[channel]
            return True

    def publish(self, channel: str, payload: Any) -> int:
        """
        Deliver ``payload`` to every subscriber of ``channel``.

        Returns:
            Number of handlers that ran without raising
        """
        with self._lock:
            # Snapshot so handlers may (un)subscribe while we iterate
            handlers = list(self._subscribers.get(channel, ()))
            wildcard = list(self._subscribers.get(WILDCARD, ())) if channel != WILDCARD else []

        delivered = 0
        for handler in handlers:
            delivered += self._deliver(channel, handler, payload)
        for handler in wildcard:
            delivered += self._deliver(channel, handler, (channel, payload))
        return delivered

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscribers.get(channel, ()))

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()

    @staticmethod
    def _deliver(channel: str, handler: Handler, payload: Any) -> int:
        try:
            handler(payload)
            return 1
        except Exception as e:
            logger.error(f"Subscriber for '{channel}' failed: {e}", exc_info=True)
            return 0
