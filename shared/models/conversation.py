"""Pydantic models for persisted conversations."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """One entry of a conversation's message log.

    ``sender`` is serialised as ``from`` and only set for messages that
    arrived through the WhatsApp webhook.
    """

    model_config = ConfigDict(populate_by_name=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    sender: str | None = Field(default=None, alias="from")

    def to_record(self) -> dict:
        """Return the JSON-safe dict stored in the messages column."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ConversationSummary(BaseModel):
    id: str
    title: str
    created_at: datetime
    updated_at: datetime


class Conversation(ConversationSummary):
    messages: list[ChatMessage] = []


class ConversationsListResponse(BaseModel):
    conversations: list[ConversationSummary] = []
    page: int
    limit: int
