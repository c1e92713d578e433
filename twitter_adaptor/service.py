"""Twitter service: lifecycle, mention polling and outbound operations."""

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from .config import ServiceConfig
from .models import RateLimitSignal, ThreadContext, TweetError
from .schemas import TwitterWebhookPayload
from .services import EventBus, EventType, MentionIngestor, RateLimitPolicy, ThreadStore
from .twitter_client import TwitterClient

logger = logging.getLogger(__name__)


class TwitterService:
    """Polls for mentions and exposes reply/post/search operations.

    Events (see ``EventType``) are published on ``self.events``; subscribe
    with ``on()``. Every subscriber and every thread history is dropped by
    ``stop()``.
    """

    def __init__(self, config: ServiceConfig, client: Optional[TwitterClient] = None) -> None:
        self.config = config
        self.client = client or TwitterClient(config.credentials)

        self.events = EventBus()
        self.threads = ThreadStore(config.thread_history_limit)
        self.rate_limit_policy = RateLimitPolicy(
            max_retries=config.max_retries,
            base_delay_ms=config.base_delay_ms,
        )
        self.ingestor = MentionIngestor(
            client=self.client,
            threads=self.threads,
            events=self.events,
            rate_limit_policy=self.rate_limit_policy,
            since_id=config.since_id,
            include_own_tweets=config.include_own_tweets,
        )

        self._poll_task: Optional[asyncio.Task] = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def polling(self) -> bool:
        """Whether the poll timer is armed."""
        return self._poll_task is not None and not self._poll_task.done()

    def on(self, event: str, handler: Callable[[Any], Any]) -> Callable[[], None]:
        """Subscribe to a service event. Returns an unsubscribe callable."""
        return self.events.subscribe(event, handler)

    def get_thread(self, thread_id: str) -> Optional[ThreadContext]:
        return self.threads.get(thread_id)

    async def start(self) -> None:
        """Resolve the account, poll once, then poll every ``poll_interval_ms``.

        Raises:
            Exception: Whatever the identity lookup raised. The timer is not
                armed in that case.
        """
        if self._started:
            logger.warning("Twitter service already started")
            return
        self._started = True

        try:
            _, username = await self.ingestor.resolve_identity()
        except Exception as e:
            self._started = False
            logger.error("Failed to start Twitter service: %s", e, exc_info=True)
            raise

        logger.info("Starting service for @%s", username)
        logger.info("Poll interval: %d ms", self.config.poll_interval_ms)

        await self.ingestor.poll()
        if not self._started or self._poll_task is not None:
            # A handler stopped or restarted the service during the first pass
            logger.info("Service stopped or restarted during first poll, timer not armed")
            return
        self._poll_task = asyncio.create_task(self._poll_loop())

        logger.info("Twitter service started")

    async def stop(self) -> None:
        """Cancel the poll timer and drop all subscribers and thread history.

        A pass that is in flight is cancelled at its next await. When called
        from a handler running inside a timer pass, that pass finishes its
        batch and the timer exits without polling again.
        """
        task, self._poll_task = self._poll_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        self.events.clear()
        self.threads.clear()
        self._started = False

        logger.info("Twitter service stopped")

    async def run(self) -> None:
        """Run the service until cancelled."""
        await self.start()
        try:
            if self._poll_task is not None:
                await self._poll_task
        finally:
            await self.stop()

    async def _poll_loop(self) -> None:
        interval = self.config.poll_interval_ms / 1000
        # stop() from inside a pass cannot cancel this task; it detaches it instead
        while self._poll_task is asyncio.current_task():
            await asyncio.sleep(interval)
            if self._poll_task is not asyncio.current_task():
                break
            await self.ingestor.poll()
        logger.debug("Poll timer detached, exiting")

    async def handle_webhook_payload(self, payload: Any) -> int:
        """Validate a webhook body and ingest the tweet it carries.

        Invalid payloads are logged and dropped.

        Returns:
            Number of mentions published.
        """
        try:
            parsed = TwitterWebhookPayload.model_validate(payload)
        except ValidationError as e:
            logger.warning("Invalid webhook payload: %s", e)
            return 0

        if parsed.direct_message_events:
            logger.info("Ignoring %d direct message event(s)", len(parsed.direct_message_events))

        if parsed.tweet is None:
            logger.debug("Webhook payload carried no tweet")
            return 0

        logger.info("Received webhook tweet %s", parsed.tweet.id)
        return await self.ingestor.ingest([parsed.tweet.model_dump(exclude_none=True)])

    async def reply_to_tweet(self, tweet_id: str, text: str) -> dict[str, Any]:
        """Reply to a tweet with the given message."""
        response = await self._call(
            lambda: self.client.post(text, reply_to=tweet_id),
            action="respond to tweet",
            error_event=EventType.TWEET_ERROR,
            tweet_id=tweet_id,
            message=text,
        )
        logger.info("Successfully responded to tweet %s", tweet_id)
        return response

    async def tweet(self, text: str) -> dict[str, Any]:
        """Post a new tweet."""
        return await self._call(
            lambda: self.client.post(text),
            action="post tweet",
            error_event=EventType.TWEET_ERROR,
            message=text,
        )

    async def search_tweets(self, query: str, max_results: int = 10) -> dict[str, Any]:
        """Search recent tweets matching a query."""
        return await self._call(
            lambda: self.client.search(query, max_results=max_results),
            action="search tweets",
            error_event=EventType.SEARCH_ERROR,
            message=query,
        )

    async def get_my_profile(self) -> dict[str, Any]:
        """Get the authenticated account's profile."""
        return await self._call(
            self.client.who_am_i,
            action="get profile",
            error_event=EventType.PROFILE_ERROR,
        )

    async def delete_tweet(self, tweet_id: str) -> dict[str, Any]:
        return await self._call(
            lambda: self.client.delete_tweet(tweet_id),
            action="delete tweet",
            error_event=EventType.DELETE_ERROR,
            tweet_id=tweet_id,
        )

    async def _call(
        self,
        operation: Callable[[], Awaitable[Any]],
        action: str,
        error_event: EventType,
        tweet_id: str = "",
        message: str = "",
    ) -> Any:
        """Run an API call, publishing its failure before re-raising it.

        Rate limits are reported as ``rateLimitWarning``; anything else as
        ``error_event``.
        """
        try:
            return await operation()
        except Exception as e:
            if self.rate_limit_policy.is_rate_limited(e):
                logger.warning(
                    "Rate limited when attempting to %s (tweet_id=%s)", action, tweet_id or "-"
                )
                await self.events.publish(
                    EventType.RATE_LIMIT_WARNING,
                    RateLimitSignal(tweet_id=tweet_id, message=message, error=e),
                )
            else:
                logger.error("Failed to %s (tweet_id=%s): %s", action, tweet_id or "-", e)
                await self.events.publish(
                    error_event,
                    TweetError(tweet_id=tweet_id, message=message, error=e),
                )
            raise
