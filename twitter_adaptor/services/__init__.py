"""Service layer for mention ingestion and API call policy."""

from .event_bus import EventBus, EventType
from .mention_service import IngestorState, MentionIngestor, normalize_mention
from .rate_limit_service import RateLimitDecision, RateLimitPolicy, retry_with_backoff
from .thread_service import ThreadStore

__all__ = [
    "EventBus",
    "EventType",
    "IngestorState",
    "MentionIngestor",
    "RateLimitDecision",
    "RateLimitPolicy",
    "ThreadStore",
    "normalize_mention",
    "retry_with_backoff",
]
