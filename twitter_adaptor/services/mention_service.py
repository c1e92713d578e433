"""Mention polling: fetch, order, filter and dispatch new mentions."""

import logging
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from ..models import Mention, MentionEvent, Message, PollError, RateLimitSignal
from ..twitter_client import MENTION_FIELDS, TwitterClient, TwitterClientError
from .event_bus import EventBus, EventType
from .rate_limit_service import RateLimitPolicy
from .thread_service import ThreadStore

logger = logging.getLogger(__name__)

MAX_RESULTS = 100
SEEN_WINDOW = 1000
UNKNOWN_AUTHOR = "unknown"


class IngestorState(str, Enum):
    IDLE = "idle"
    RESOLVING_IDENTITY = "resolving_identity"
    POLLING = "polling"


def normalize_mention(raw: dict[str, Any], now: Optional[datetime] = None) -> Optional[Mention]:
    """Build a Mention from a raw API record.

    Returns None when the record has no id.
    """
    tweet_id = raw.get("id")
    if not tweet_id:
        return None
    tweet_id = str(tweet_id)

    created_at = _parse_timestamp(raw.get("created_at")) or now or datetime.now(timezone.utc)

    return Mention(
        id=tweet_id,
        text=raw.get("text") or "",
        conversation_id=str(raw.get("conversation_id") or tweet_id),
        author_id=str(raw.get("author_id") or UNKNOWN_AUTHOR),
        created_at=created_at,
    )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable created_at: %r", value)
        return None


def _extract_records(response: Any) -> list[dict[str, Any]]:
    """Pull the tweet list out of a search response (newest first)."""
    if not response:
        return []
    data = response.get("data") if isinstance(response, dict) else getattr(response, "data", None)
    if not data:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


class MentionIngestor:
    """Polls for mentions of the authenticated account.

    Owns the since-id cursor and the cached account identity. ``poll()`` is
    one transition IDLE -> (RESOLVING_IDENTITY) -> POLLING -> IDLE and never
    raises; failures are published as events instead.
    """

    def __init__(
        self,
        client: TwitterClient,
        threads: ThreadStore,
        events: EventBus,
        rate_limit_policy: RateLimitPolicy,
        since_id: Optional[str] = None,
        include_own_tweets: bool = False,
    ):
        self.client = client
        self.threads = threads
        self.events = events
        self.rate_limit_policy = rate_limit_policy
        self.seed_since_id = since_id
        self.include_own_tweets = include_own_tweets

        self.state = IngestorState.IDLE
        self.account_id: Optional[str] = None
        self.account_username: Optional[str] = None

        self._cursor: Optional[str] = None
        self._seen_ids: deque[str] = deque(maxlen=SEEN_WINDOW)

    @property
    def cursor(self) -> Optional[str]:
        """Id of the newest mention fetched so far."""
        return self._cursor

    def since_id(self) -> Optional[str]:
        """The since_id constraint for the next search, if any."""
        if self._cursor:
            return self._cursor
        if self.seed_since_id and self.seed_since_id != "0":
            return self.seed_since_id
        return None

    async def resolve_identity(self) -> tuple[str, str]:
        """Look up and cache the authenticated account's id and username.

        Raises:
            TwitterClientError: If the lookup returns no usable identity.
        """
        if self.account_id and self.account_username:
            return self.account_id, self.account_username

        response = await self.client.who_am_i()
        data = (response or {}).get("data") or {}
        account_id = data.get("id")
        username = data.get("username")
        if not account_id or not username:
            raise TwitterClientError(f"Identity lookup returned no account: {response!r}")

        self.account_id = str(account_id)
        self.account_username = str(username)
        logger.info("Authenticated as @%s (%s)", self.account_username, self.account_id)
        return self.account_id, self.account_username

    async def poll(self) -> int:
        """Run one ingestion pass.

        Returns:
            Number of mentions published.
        """
        if self.state is not IngestorState.IDLE:
            logger.warning("Skipping poll, previous pass still %s", self.state.value)
            return 0

        try:
            if not (self.account_id and self.account_username):
                self.state = IngestorState.RESOLVING_IDENTITY
                await self.resolve_identity()

            self.state = IngestorState.POLLING
            return await self._poll_mentions()

        except Exception as e:
            await self._report_failure(e)
            return 0

        finally:
            self.state = IngestorState.IDLE

    async def _poll_mentions(self) -> int:
        query = f"@{self.account_username}"
        since_id = self.since_id()
        logger.debug("Searching %s since %s", query, since_id or "<none>")

        response = await self.client.search(
            query,
            since_id=since_id,
            max_results=MAX_RESULTS,
            tweet_fields=MENTION_FIELDS,
        )

        records = _extract_records(response)
        if not records:
            logger.debug("No new mentions")
            return 0

        self._advance_cursor(records)
        logger.info("Found %d new mention(s)", len(records))

        # Results are newest first; replay oldest first
        return await self.ingest(reversed(records))

    def _advance_cursor(self, records: list[dict[str, Any]]) -> None:
        newest = next((str(r["id"]) for r in records if r.get("id")), None)
        if newest is None:
            logger.warning("Search batch carried no ids, cursor stays at %s", self._cursor)
            return
        self._cursor = newest
        logger.debug("Cursor advanced to %s", newest)

    async def ingest(self, records: Iterable[dict[str, Any]]) -> int:
        """Process raw records in the given order.

        Each retained mention is appended to its thread and then published as
        ``newMention`` before the next record is looked at.

        Returns:
            Number of mentions published.
        """
        published = 0

        for raw in records:
            mention = normalize_mention(raw)
            if mention is None:
                logger.warning("Dropping mention without id: %s", raw)
                continue

            if (
                not self.include_own_tweets
                and self.account_id is not None
                and mention.author_id == self.account_id
            ):
                logger.debug("Skipping own tweet %s", mention.id)
                continue

            if mention.id in self._seen_ids:
                logger.debug("Skipping already processed mention %s", mention.id)
                continue

            await self._dispatch(mention)
            self._seen_ids.append(mention.id)
            published += 1

        return published

    async def _dispatch(self, mention: Mention) -> None:
        logger.info(
            "Processing mention %s from %s: %s",
            mention.id,
            mention.author_id,
            mention.text[:50] + "..." if len(mention.text) > 50 else mention.text,
        )

        self.threads.append(
            mention.conversation_id,
            Message(
                sender_id=mention.author_id,
                timestamp=datetime.now(timezone.utc),
                content=mention.text,
            ),
        )

        await self.events.publish(
            EventType.NEW_MENTION,
            MentionEvent(
                thread_id=mention.conversation_id,
                user_id=mention.author_id,
                tweet_id=mention.id,
                message=mention.text,
            ),
        )

    async def _report_failure(self, error: Exception) -> None:
        # The cursor is left alone so the same window is retried next tick
        if self.rate_limit_policy.is_rate_limited(error):
            logger.warning("Rate limited when polling for mentions: %s", error)
            await self.events.publish(
                EventType.RATE_LIMIT_WARNING,
                RateLimitSignal(tweet_id="", message="", error=error),
            )
        else:
            logger.error("Error polling for mentions: %s", error, exc_info=True)
            await self.events.publish(EventType.POLL_ERROR, PollError(error=error))
