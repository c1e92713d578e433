"""Twitter API v2 client wrapper for bot interactions."""

import logging
from typing import Any, Optional, Sequence

import httpx
from tweepy.asynchronous import AsyncClient

from .config import AppOnly, Bearer, Credentials, UserContext

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api.twitter.com/oauth2/token"
MENTION_FIELDS = ("conversation_id", "author_id", "created_at")


class TwitterClientError(Exception):
    """Base exception for Twitter client errors."""

    pass


class AuthenticationError(TwitterClientError):
    """Raised when credentials cannot be turned into a working client."""

    pass


async def fetch_app_bearer_token(api_key: str, api_secret: str) -> str:
    """Exchange an app key and secret for an app-only bearer token."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.post(
                TOKEN_URL,
                auth=(api_key, api_secret),
                data={"grant_type": "client_credentials"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Failed to fetch app bearer token (HTTP %d): %s",
                e.response.status_code,
                e.response.text,
            )
            raise

    if str(data.get("token_type", "")).lower() != "bearer" or not data.get("access_token"):
        raise AuthenticationError("Token endpoint did not return a bearer token")

    logger.info("Fetched app-only bearer token")
    return data["access_token"]


class TwitterClient:
    """Wrapper around tweepy's async client for bot operations.

    Every method returns the raw API v2 JSON body. Errors raised by tweepy
    propagate unchanged so callers can classify them.
    """

    def __init__(self, credentials: Credentials) -> None:
        self.credentials = credentials
        self.user_auth = isinstance(credentials, UserContext)
        self._client: Optional[AsyncClient] = None

    async def _get_client(self) -> AsyncClient:
        if self._client is not None:
            return self._client

        credentials = self.credentials
        if isinstance(credentials, UserContext):
            logger.info("Using user-context credentials")
            self._client = AsyncClient(
                consumer_key=credentials.api_key,
                consumer_secret=credentials.api_secret,
                access_token=credentials.access_token,
                access_token_secret=credentials.access_token_secret,
                return_type=dict,
            )
        elif isinstance(credentials, Bearer):
            logger.info("Using bearer token credentials")
            self._client = AsyncClient(bearer_token=credentials.token, return_type=dict)
        elif isinstance(credentials, AppOnly):
            logger.info("Using app-only credentials")
            token = await fetch_app_bearer_token(credentials.api_key, credentials.api_secret)
            self._client = AsyncClient(bearer_token=token, return_type=dict)
        else:
            raise AuthenticationError(f"Unsupported credentials: {type(credentials).__name__}")

        return self._client

    async def who_am_i(self) -> dict[str, Any]:
        """Look up the authenticated account."""
        client = await self._get_client()
        return await client.get_me(user_auth=self.user_auth)

    async def search(
        self,
        query: str,
        since_id: Optional[str] = None,
        max_results: int = 100,
        tweet_fields: Sequence[str] = MENTION_FIELDS,
    ) -> dict[str, Any]:
        """Search recent tweets.

        Args:
            query: Search query.
            since_id: Only return tweets newer than this id.
            max_results: Page size (10 to 100).
            tweet_fields: Extra tweet fields to request.
        """
        client = await self._get_client()
        return await client.search_recent_tweets(
            query,
            since_id=since_id,
            max_results=max_results,
            tweet_fields=list(tweet_fields),
            user_auth=self.user_auth,
        )

    async def post(self, text: str, reply_to: Optional[str] = None) -> dict[str, Any]:
        """Post a tweet, optionally as a reply."""
        client = await self._get_client()
        response = await client.create_tweet(
            text=text,
            in_reply_to_tweet_id=reply_to,
            user_auth=self.user_auth,
        )
        logger.info("Posted tweet: %s", (response or {}).get("data", {}).get("id"))
        return response

    async def delete_tweet(self, tweet_id: str) -> dict[str, Any]:
        client = await self._get_client()
        return await client.delete_tweet(tweet_id, user_auth=self.user_auth)
