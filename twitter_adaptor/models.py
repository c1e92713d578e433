"""Domain objects passed between the ingestor, thread store and event bus."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Mention:
    """A normalized tweet that mentions the authenticated account."""

    id: str
    text: str
    conversation_id: str
    author_id: str
    created_at: datetime


@dataclass(frozen=True)
class Message:
    """A single entry in a conversation's history."""

    sender_id: str
    timestamp: datetime
    content: str

    def __str__(self) -> str:
        return f"{self.sender_id}: {self.content}"


@dataclass
class ThreadContext:
    """Bounded message history for one conversation."""

    thread_id: str
    history: list[Message] = field(default_factory=list)


@dataclass(frozen=True)
class MentionEvent:
    """Payload of the ``newMention`` event."""

    thread_id: str
    user_id: str
    tweet_id: str
    message: str


@dataclass(frozen=True)
class RateLimitSignal:
    """Payload of the ``rateLimitWarning`` event.

    ``tweet_id`` is empty when the limit was hit while polling.
    """

    tweet_id: str
    message: str
    error: Any


@dataclass(frozen=True)
class TweetError:
    """Payload of the error events emitted by service operations."""

    tweet_id: str
    message: str
    error: Any


@dataclass(frozen=True)
class PollError:
    """Payload of the ``pollError`` event."""

    error: Any
