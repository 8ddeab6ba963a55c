"""Terminal chat client settings.

Resolved once at import from the environment (and `.env` via `load_dotenv`).
These settings belong to the chat client only; the Intercom credential and
endpoint live in `app.intercom.provider_config`.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Base URL of the proxy's HTTP API.
CHAT_API_URL = os.getenv("CHAT_API_URL", "http://127.0.0.1:8000").rstrip("/")

# JSON file mirroring the client session between runs.
CHAT_SESSION_PATH = os.getenv("CHAT_SESSION_PATH", "intercom_session.json")

REQUEST_TIMEOUT_SECONDS = float(os.getenv("CHAT_REQUEST_TIMEOUT_SECONDS", "60"))
