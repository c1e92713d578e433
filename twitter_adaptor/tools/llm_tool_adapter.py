"""LLM-facing adapter over the Twitter service."""

import logging
from enum import Enum
from typing import Any, Callable, Optional

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel

from ..models import MentionEvent, PollError, RateLimitSignal, TweetError
from ..service import TwitterService
from ..services import EventBus, EventType

logger = logging.getLogger(__name__)


class AdapterEvent(str, Enum):
    NEW_TWITTER_MESSAGE = "newTwitterMessage"
    RATE_LIMIT_WARNING = "rateLimitWarning"
    ERROR = "error"


class LLMResponse(BaseModel):
    """Uniform result handed back to the model."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Any = None


def _failure(message: str, error: Any) -> LLMResponse:
    return LLMResponse(success=False, message=message, error=str(error))


class LLMToolAdapter:
    """Wraps TwitterService calls so they never raise.

    Service events are re-published on ``self.events`` under
    ``AdapterEvent`` names with ``LLMResponse`` payloads.
    """

    def __init__(self, service: TwitterService):
        self.service = service
        self.events = EventBus()
        self._unsubscribers: list[Callable[[], None]] = []

    def _wire_events(self) -> None:
        self._unwire_events()
        self._unsubscribers = [
            self.service.on(EventType.NEW_MENTION, self._on_mention),
            self.service.on(EventType.RATE_LIMIT_WARNING, self._on_rate_limit),
            self.service.on(EventType.POLL_ERROR, self._on_poll_error),
            self.service.on(EventType.TWEET_ERROR, self._on_tweet_error),
        ]

    def _unwire_events(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def _on_mention(self, mention: MentionEvent) -> None:
        await self.events.publish(
            AdapterEvent.NEW_TWITTER_MESSAGE,
            LLMResponse(
                success=True,
                data={
                    "message_id": mention.tweet_id,
                    "thread_id": mention.thread_id,
                    "user_id": mention.user_id,
                    "content": mention.message,
                },
            ),
        )

    async def _on_rate_limit(self, warning: RateLimitSignal) -> None:
        await self.events.publish(
            AdapterEvent.RATE_LIMIT_WARNING,
            _failure("Rate limit reached", warning.error),
        )

    async def _on_poll_error(self, event: PollError) -> None:
        await self.events.publish(
            AdapterEvent.ERROR,
            _failure("Error polling for mentions", event.error),
        )

    async def _on_tweet_error(self, event: TweetError) -> None:
        await self.events.publish(
            AdapterEvent.ERROR,
            _failure("Error sending tweet", event.error),
        )

    async def start(self) -> LLMResponse:
        """Start the Twitter service."""
        self._wire_events()
        try:
            await self.service.start()
        except Exception as e:
            logger.error("Failed to start Twitter service: %s", e)
            self._unwire_events()
            return _failure("Failed to start Twitter service", e)
        return LLMResponse(success=True, message="Twitter service started successfully")

    async def stop(self) -> LLMResponse:
        """Stop the Twitter service."""
        try:
            await self.service.stop()
        except Exception as e:
            logger.error("Failed to stop Twitter service: %s", e)
            return _failure("Failed to stop Twitter service", e)
        finally:
            # stop() already dropped the service subscribers
            self._unsubscribers = []
        return LLMResponse(success=True, message="Twitter service stopped successfully")

    async def post_tweet(self, content: str) -> LLMResponse:
        try:
            tweet = await self.service.tweet(content)
        except Exception as e:
            return _failure("Failed to post tweet", e)
        return LLMResponse(success=True, message="Tweet posted successfully", data=tweet)

    async def reply_to_tweet(self, tweet_id: str, content: str) -> LLMResponse:
        try:
            reply = await self.service.reply_to_tweet(tweet_id, content)
        except Exception as e:
            return _failure("Failed to post reply", e)
        return LLMResponse(success=True, message="Reply posted successfully", data=reply)

    async def get_my_profile(self) -> LLMResponse:
        try:
            profile = await self.service.get_my_profile()
        except Exception as e:
            return _failure("Failed to get profile", e)
        return LLMResponse(success=True, data=profile)

    async def search_tweets(self, query: str) -> LLMResponse:
        try:
            tweets = await self.service.search_tweets(query)
        except Exception as e:
            return _failure("Failed to search tweets", e)
        return LLMResponse(success=True, data=tweets)

    def as_tools(self) -> list[BaseTool]:
        """Expose the operations as LangChain tools returning JSON strings."""

        async def post_tweet(content: str) -> str:
            return (await self.post_tweet(content)).model_dump_json()

        async def reply_to_tweet(tweet_id: str, content: str) -> str:
            return (await self.reply_to_tweet(tweet_id, content)).model_dump_json()

        async def get_my_profile() -> str:
            return (await self.get_my_profile()).model_dump_json()

        async def search_tweets(query: str) -> str:
            return (await self.search_tweets(query)).model_dump_json()

        return [
            StructuredTool.from_function(
                coroutine=post_tweet,
                name="post_tweet",
                description="Post a new tweet from the bot's account. Args: content (tweet text).",
            ),
            StructuredTool.from_function(
                coroutine=reply_to_tweet,
                name="reply_to_tweet",
                description=(
                    "Reply to an existing tweet. Args: tweet_id (id of the tweet to answer), "
                    "content (reply text)."
                ),
            ),
            StructuredTool.from_function(
                coroutine=get_my_profile,
                name="get_my_profile",
                description="Get the profile (id and username) of the bot's account.",
            ),
            StructuredTool.from_function(
                coroutine=search_tweets,
                name="search_tweets",
                description="Search recent tweets. Args: query (Twitter search query).",
            ),
        ]
