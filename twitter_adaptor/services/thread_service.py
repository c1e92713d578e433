"""In-memory conversation history, bounded per thread."""

import logging
from typing import Optional

from ..models import Message, ThreadContext

logger = logging.getLogger(__name__)


class ThreadStore:
    """Per-conversation message log with FIFO eviction."""

    def __init__(self, history_limit: int = 50):
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self.history_limit = history_limit
        self._threads: dict[str, ThreadContext] = {}

    def get_or_create(self, thread_id: str) -> ThreadContext:
        """Get the context for a thread, creating it if it doesn't exist."""
        context = self._threads.get(thread_id)
        if context is None:
            context = ThreadContext(thread_id=thread_id)
            self._threads[thread_id] = context
            logger.debug("Created thread context %s", thread_id)
        return context

    def get(self, thread_id: str) -> Optional[ThreadContext]:
        return self._threads.get(thread_id)

    def append(self, thread_id: str, message: Message) -> ThreadContext:
        """Add a message to a thread, keeping only the most recent entries."""
        context = self.get_or_create(thread_id)
        context.history.append(message)

        overflow = len(context.history) - self.history_limit
        if overflow > 0:
            del context.history[:overflow]

        return context

    def clear(self) -> None:
        """Forget every thread."""
        self._threads.clear()

    def __len__(self) -> int:
        return len(self._threads)

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._threads
