"""Pydantic schemas for incoming webhook payloads."""

from typing import Any, Optional

from pydantic import BaseModel


class TwitterMention(BaseModel):
    """A user mentioned in a tweet's entities."""

    username: str
    id: str


class TwitterEntities(BaseModel):
    mentions: Optional[list[TwitterMention]] = None


class ReferencedTweet(BaseModel):
    type: str
    id: str


class Tweet(BaseModel):
    """Tweet object delivered by the webhook."""

    text: str
    id: str
    conversation_id: str
    author_id: str
    created_at: Optional[str] = None
    in_reply_to_user_id: Optional[str] = None
    referenced_tweets: Optional[list[ReferencedTweet]] = None
    entities: Optional[TwitterEntities] = None


class DirectMessageData(BaseModel):
    text: str
    entities: Optional[dict[str, Any]] = None


class DirectMessageTarget(BaseModel):
    recipient_id: str


class DirectMessageCreate(BaseModel):
    message_data: DirectMessageData
    sender_id: str
    target: Optional[DirectMessageTarget] = None


class DirectMessageEvent(BaseModel):
    type: str
    id: str
    message_create: DirectMessageCreate


class TwitterWebhookPayload(BaseModel):
    """Webhook body carrying a tweet and/or direct message events."""

    tweet: Optional[Tweet] = None
    direct_message_events: Optional[list[DirectMessageEvent]] = None
