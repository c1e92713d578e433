"""Shared fixtures and fakes for the test suite."""

from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock

import pytest
import tweepy

from twitter_adaptor.config import ServiceConfig

ACCOUNT_ID = "999"
ACCOUNT_USERNAME = "testbot"


def make_rate_limit_error(reset: Optional[float] = None) -> tweepy.errors.TooManyRequests:
    """Build the error tweepy raises on HTTP 429."""
    headers = {} if reset is None else {"x-rate-limit-reset": str(int(reset))}
    response = SimpleNamespace(status_code=429, reason="Too Many Requests", headers=headers)
    return tweepy.errors.TooManyRequests(response, response_json={})


class FakeHTTPError(Exception):
    """An error carrying a bare HTTP response, like aiohttp or httpx raise."""

    def __init__(self, status: int, headers: Optional[dict] = None):
        super().__init__(f"HTTP {status}")
        self.response = SimpleNamespace(status=status, headers=headers or {})


def tweet(tweet_id: str, author_id: str = "42", conversation_id: Optional[str] = None, **extra):
    record = {
        "id": tweet_id,
        "text": f"@{ACCOUNT_USERNAME} message {tweet_id}",
        "author_id": author_id,
        "conversation_id": conversation_id or "conv-1",
        "created_at": "2024-01-07T12:00:00.000Z",
    }
    record.update(extra)
    return record


class FakeTwitterClient:
    """In-memory stand-in for TwitterClient.

    ``tweets`` holds raw records newest first, as the search API returns
    them; ``search`` honours ``since_id`` by numeric comparison.
    """

    def __init__(self, tweets: Optional[list] = None):
        self.tweets = list(tweets or [])
        self.who_am_i = AsyncMock(
            return_value={"data": {"id": ACCOUNT_ID, "username": ACCOUNT_USERNAME, "name": "Test"}}
        )
        self.search = AsyncMock(side_effect=self._search)
        self.post = AsyncMock(return_value={"data": {"id": "5000", "text": "posted"}})
        self.delete_tweet = AsyncMock(return_value={"data": {"deleted": True}})

    async def _search(self, query, since_id=None, max_results=100, tweet_fields=()):
        results = [t for t in self.tweets if since_id is None or int(t["id"]) > int(since_id)]
        if not results:
            return {"meta": {"result_count": 0}}
        return {"data": results[:max_results], "meta": {"result_count": len(results)}}


@pytest.fixture
def fake_client() -> FakeTwitterClient:
    return FakeTwitterClient()


@pytest.fixture
def service_config() -> ServiceConfig:
    return ServiceConfig(
        api_key="test-key",
        api_secret="test-secret",
        access_token="test-token",
        access_token_secret="test-token-secret",
    )
