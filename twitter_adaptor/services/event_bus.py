"""In-process publish/subscribe for service events."""

import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class EventType(str, Enum):
    """Events published by the Twitter service."""

    NEW_MENTION = "newMention"
    RATE_LIMIT_WARNING = "rateLimitWarning"
    POLL_ERROR = "pollError"
    TWEET_ERROR = "tweetError"
    SEARCH_ERROR = "searchError"
    PROFILE_ERROR = "profileError"
    DELETE_ERROR = "deleteError"


class EventBus:
    """Publish/subscribe register keyed by event name.

    Handlers run in subscription order, once per publish. Coroutine handlers
    are awaited before the next handler runs. A failing handler is logged and
    does not affect the publisher or the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register a handler and return a callable that removes it."""
        self._handlers[_event_name(event)].append(handler)
        return lambda: self.unsubscribe(event, handler)

    def unsubscribe(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(_event_name(event))
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[_event_name(event)]

    def clear(self) -> None:
        """Drop every subscriber."""
        self._handlers.clear()

    def subscriber_count(self, event: str | None = None) -> int:
        if event is None:
            return sum(len(handlers) for handlers in self._handlers.values())
        return len(self._handlers.get(_event_name(event), ()))

    async def publish(self, event: str, payload: Any = None) -> int:
        """Deliver a payload to every subscriber of an event.

        Returns:
            Number of handlers that completed without raising.
        """
        # Copy so handlers may unsubscribe themselves while being called
        handlers = list(self._handlers.get(_event_name(event), ()))
        delivered = 0

        for handler in handlers:
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error("Handler for %s failed: %s", _event_name(event), e, exc_info=True)

        return delivered


def _event_name(event: str) -> str:
    return event.value if isinstance(event, EventType) else str(event)
