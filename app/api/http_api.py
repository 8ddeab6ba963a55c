"""
HTTP API adapter for the Intercom support-chat proxy.

Architectural role:
- Expose the conversation endpoints consumed by the chat UI.
- Enforce adapter-level input validation and credential checks.
- Delegate provider work to `app.intercom.conversations`.
- Normalize conversation documents into flat message lists.

Endpoint responsibilities:
- `GET /conversations`: fetch and flatten one conversation.
- `POST /conversations`: create a conversation or reply to an existing one,
  then return the fresh flattened state.

The router is mounted twice: at the root and under `/api/intercom`, the path
used by the web chat front end.

API request lifecycle (`POST /conversations`):
1. Check that the Intercom credential is configured.
2. Parse request JSON (`messages`, optional `conversationId`).
3. Validate that the latest message carries `content` and `userId`.
4. Create (no id) or reply-then-refetch (id present).
5. Flatten and return `{conversationId, messages, conversation}`.

Input validation behavior:
- Missing credential -> HTTP 500.
- Missing `conversationId` on fetch -> HTTP 400.
- Empty `messages` / invalid latest message / malformed JSON -> HTTP 400.

Error handling strategy:
- Upstream or normalization failures on fetch return HTTP 500 with `error`
  and `details`.
- Any failure in the send write path returns HTTP 500 with the input history,
  one synthetic apology message appended, and the raw error detail.

Side effects:
- Outbound Intercom calls only; no local state is kept between requests.
- Emits request debug logs only when `DEBUG == "true"`.
"""

from dotenv import load_dotenv

load_dotenv()

import os
import logging

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from app.core.errors import ConfigurationError, InvalidRequest, ProxyError
from app.core.messages import ExistingConversation, apology_message, conversation_ref, flatten
from app.intercom.client import build_client
from app.intercom.conversations import (
    create_conversation,
    get_conversation,
    reply_to_conversation,
)


logger = logging.getLogger(__name__)

# Sensitive request/response debug logging is opt-in.
DEBUG = os.getenv("DEBUG") == "true"

router = APIRouter()


def _error_response(exc: ProxyError, **extra) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc), **extra})


def _conversation_payload(conversation: dict) -> dict:
    return {
        "conversationId": conversation.get("id"),
        "messages": [message.to_json() for message in flatten(conversation)],
        "conversation": conversation,
    }


# ============================================================
# Fetch
# ============================================================

@router.get("/conversations")
async def fetch_conversation(conversation_id: str | None = Query(default=None, alias="conversationId")):
    """
    Return the flattened state of one Intercom conversation.

    Input validation behavior:
    - HTTP 500 when the credential is missing (checked first).
    - HTTP 400 when `conversationId` is missing or empty.

    Error handling strategy:
    - Upstream failures and unreadable conversation documents return
      HTTP 500 `{error, details}`.
    """
    try:
        client = build_client()
    except ConfigurationError as exc:
        logger.error("Fetch rejected: %s", exc)
        return _error_response(exc)

    if not conversation_id:
        return _error_response(InvalidRequest("conversationId is required"))

    try:
        conversation = await get_conversation(client, conversation_id)
        return _conversation_payload(conversation)
    except Exception as exc:
        logger.exception("Error retrieving conversation %s", conversation_id)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to retrieve conversation", "details": str(exc)},
        )


# ============================================================
# Send
# ============================================================

async def _parse_send_request(request: Request):
    try:
        body = await request.json()
    except ValueError:
        raise InvalidRequest("Request body must be valid JSON")

    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")

    messages = body.get("messages")
    if not isinstance(messages, list) or not messages:
        raise InvalidRequest("Messages are required")

    latest = messages[-1]
    if not isinstance(latest, dict) or not latest.get("content") or not latest.get("userId"):
        raise InvalidRequest("Latest message must have content and userId")

    return messages, latest, body.get("conversationId")


@router.post("/conversations")
async def send_message(request: Request):
    """
    Deliver the latest message to Intercom and return fresh conversation state.

    Only the last element of `messages` is written; earlier elements are assumed
    already delivered and are only echoed back on failure.

    Create vs reply:
    - No `conversationId` -> create a conversation with the message as source.
    - `conversationId` present -> append a reply, then re-fetch, since the reply
      call does not return the updated document.
    """
    try:
        client = build_client()
    except ConfigurationError as exc:
        logger.error("Send rejected: %s", exc)
        return _error_response(exc)

    try:
        messages, latest, conversation_id = await _parse_send_request(request)
    except InvalidRequest as exc:
        logger.warning("Send rejected: %s", exc)
        return _error_response(exc)

    email = str(latest["userId"])
    content = str(latest["content"])
    ref = conversation_ref(conversation_id)

    if DEBUG:
        logger.debug("Processing message from %s: %r (ref=%r)", email, content, ref)

    try:
        if isinstance(ref, ExistingConversation):
            await reply_to_conversation(client, ref.conversation_id, email, content)
            conversation = await get_conversation(client, ref.conversation_id)
        else:
            conversation = await create_conversation(client, email, content)
        return _conversation_payload(conversation)

    except Exception as exc:
        logger.exception("Error processing message from %s", email)
        return JSONResponse(
            status_code=500,
            content={
                "messages": [*messages, apology_message()],
                "error": str(exc),
                "debug": {"context_used": False, "error": str(exc)},
            },
        )


app = FastAPI(title="Intercom support chat")
app.include_router(router)
app.include_router(router, prefix="/api/intercom")


def serve():
    """Run the API with uvicorn (`intercom-chat-server`)."""
    import uvicorn

    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(
        app,
        host=os.getenv("CHAT_API_HOST", "127.0.0.1"),
        port=int(os.getenv("CHAT_API_PORT", "8000")),
    )


if __name__ == "__main__":
    serve()
