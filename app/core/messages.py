"""Flat message contracts and the Intercom conversation normalizer.

Architectural role:
    Defines the message shape exchanged with the chat UI and converts Intercom's
    nested conversation document (source message + ordered reply parts) into a
    flat, time-ordered message list.

Determinism:
    `flatten` is a pure function of the conversation document. Calling it twice on
    the same document yields identical output.

Role mapping:
    Author type `user` maps to role `user`; every other author type (admin, bot,
    team, ...) maps to role `bot`.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field


USER_ROLE = "user"
BOT_ROLE = "bot"
SYSTEM_USER_ID = "system"
APOLOGY_TEXT = "Sorry, there was an issue sending your message. Please try again later."


class Author(BaseModel):
    """Author descriptor as reported by Intercom."""

    model_config = ConfigDict(extra="ignore")

    type: str
    id: str
    name: str | None = None
    email: str | None = None


class Message(BaseModel):
    """Flattened chat message.

    JSON field names are camelCase (`userId`) to match the UI contract.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    role: str = USER_ROLE
    content: str = ""
    timestamp: int | None = None
    user_id: str = Field(default="", alias="userId")
    author: Author | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class NewConversation:
    """No remote conversation exists yet; the next send creates one."""


@dataclass(frozen=True)
class ExistingConversation:
    """The next send appends to `conversation_id`."""

    conversation_id: str


ConversationRef = Union[NewConversation, ExistingConversation]


def conversation_ref(conversation_id: str | None) -> ConversationRef:
    """Map an optional caller-supplied id to an explicit reference."""
    if conversation_id:
        return ExistingConversation(conversation_id)
    return NewConversation()


def role_for(author: dict | None) -> str:
    if (author or {}).get("type") == USER_ROLE:
        return USER_ROLE
    return BOT_ROLE


def _author(author: dict | None) -> Author | None:
    if not author or not author.get("type"):
        return None
    return Author(
        type=str(author["type"]),
        id=str(author.get("id") or ""),
        name=author.get("name"),
        email=author.get("email"),
    )


def _message(item_id, body, timestamp, author: dict | None) -> Message:
    author = author or {}
    return Message(
        id=str(item_id or ""),
        role=role_for(author),
        content=body,
        timestamp=timestamp,
        user_id=author.get("email") or "",
        author=_author(author),
    )


def flatten(conversation: dict) -> list[Message]:
    """Flatten an Intercom conversation into a time-ordered message list.

    Steps:
        1. Source message with a non-empty body -> one message stamped with the
           conversation `created_at`.
        2. Every reply part with a non-empty body, in provider order, stamped
           with the part's own `created_at`.
        3. Stable ascending sort by timestamp; missing timestamps sort as 0.
    """
    messages: list[Message] = []

    source = conversation.get("source") or {}
    if source.get("body"):
        messages.append(
            _message(
                source.get("id") or conversation.get("id"),
                source["body"],
                conversation.get("created_at"),
                source.get("author"),
            )
        )

    parts = (conversation.get("conversation_parts") or {}).get("conversation_parts") or []
    for part in parts:
        if part.get("body"):
            messages.append(
                _message(part.get("id"), part["body"], part.get("created_at"), part.get("author"))
            )

    # `sorted` is stable, ties keep provider order.
    return sorted(messages, key=lambda m: m.timestamp or 0)


def apology_message() -> dict[str, Any]:
    """Build the synthetic bot message appended to a failed send."""
    return {
        "id": str(uuid.uuid4()),
        "role": BOT_ROLE,
        "content": APOLOGY_TEXT,
        "timestamp": int(time.time()),
        "userId": SYSTEM_USER_ID,
    }
