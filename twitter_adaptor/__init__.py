"""Twitter mention polling with bounded thread history and rate limit handling."""

from .config import Config, ServiceConfig, load_config
from .models import Mention, MentionEvent, Message, PollError, RateLimitSignal, ThreadContext, TweetError
from .service import TwitterService
from .services import EventBus, EventType, RateLimitPolicy, ThreadStore, retry_with_backoff
from .twitter_client import TwitterClient, TwitterClientError

__all__ = [
    "Config",
    "EventBus",
    "EventType",
    "Mention",
    "MentionEvent",
    "Message",
    "PollError",
    "RateLimitPolicy",
    "RateLimitSignal",
    "ServiceConfig",
    "ThreadContext",
    "ThreadStore",
    "TweetError",
    "TwitterClient",
    "TwitterClientError",
    "TwitterService",
    "load_config",
    "retry_with_backoff",
]
