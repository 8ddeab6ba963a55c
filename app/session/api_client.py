"""HTTP client for the chat proxy's conversation endpoints.

Processing flow:
    1. Build the request against `CHAT_API_URL`.
    2. Return `(ok, body)` where `ok` reflects a 2xx status.

Error handling strategy:
    - A failed Send still returns a renderable body (input history plus apology),
      so non-2xx JSON responses are returned rather than raised.
    - Network failures and non-JSON bodies raise `RuntimeError` for the caller.
"""

import requests

from app.session.config import CHAT_API_URL, REQUEST_TIMEOUT_SECONDS


def _json_result(response):
    try:
        data = response.json()
    except ValueError:
        raise RuntimeError(
            f"Chat API returned status {response.status_code}: {response.text}"
        )
    return response.ok, data if isinstance(data, dict) else {}


def fetch_conversation(conversation_id, base_url=CHAT_API_URL):
    """Load the flattened state of `conversation_id`."""
    try:
        response = requests.get(
            f"{base_url}/conversations",
            params={"conversationId": conversation_id},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except requests.exceptions.RequestException as err:
        raise RuntimeError(f"Chat API unreachable: {err}") from err
    return _json_result(response)


def send_messages(payload, base_url=CHAT_API_URL):
    """Post `{messages, conversationId?}` and return the proxy's answer."""
    try:
        response = requests.post(
            f"{base_url}/conversations",
            json=payload,
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
    except requests.exceptions.RequestException as err:
        raise RuntimeError(f"Chat API unreachable: {err}") from err
    return _json_result(response)
