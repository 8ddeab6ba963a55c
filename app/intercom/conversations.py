"""Conversation adapter over the Intercom conversations API.

Processing flow:
    - create: resolve contact -> `POST /conversations` -> full conversation.
    - reply: resolve contact -> `POST /conversations/{id}/parts`.
    - get: `GET /conversations/{id}`.

Statefulness:
    Nothing is cached. The remote conversation is the source of truth, so callers
    re-fetch after every mutation.

Error handling strategy:
    Errors from the client and resolver propagate unchanged. No retries.
"""

import logging
from urllib.parse import quote

from app.intercom.contacts import ensure_user


logger = logging.getLogger(__name__)


def _conversation_path(conversation_id: str) -> str:
    return f"/conversations/{quote(str(conversation_id), safe='')}"


async def get_conversation(client, conversation_id: str) -> dict:
    """Fetch the full current state of one conversation."""
    return await client.get(_conversation_path(conversation_id))


async def create_conversation(client, email: str, body: str) -> dict:
    """Open a conversation whose source message is `body`, authored by `email`.

    Returns:
        The full conversation document. When Intercom answers with a message
        receipt (`conversation_id` without `source`), the referenced
        conversation is fetched.
    """
    contact = await ensure_user(client, email)
    created = await client.post(
        "/conversations",
        json_body={"from": {"type": "user", "id": contact["id"]}, "body": body},
    )

    if "source" not in created and created.get("conversation_id"):
        created = await get_conversation(client, created["conversation_id"])

    logger.info("Created Intercom conversation %s for %s", created.get("id"), email)
    return created


async def reply_to_conversation(client, conversation_id: str, email: str, body: str) -> None:
    """Append a `comment` part authored by `email` to an existing conversation."""
    contact = await ensure_user(client, email)
    await client.post(
        f"{_conversation_path(conversation_id)}/parts",
        json_body={"type": "comment", "user_id": contact["id"], "body": body},
    )
    logger.info("Replied to Intercom conversation %s as %s", conversation_id, email)
