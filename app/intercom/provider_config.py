"""Provider/runtime configuration for the Intercom layer.

Architectural role:
    Centralizes endpoint selection and credential lookup for `app.intercom.client`
    and the HTTP boundary.

Credential resolution:
    The access token is resolved on every call to `load_access_token`, never cached,
    so a missing credential is reported per request instead of once at startup.

Failure behavior:
    Missing key material is represented as `None`; callers raise
    `ConfigurationError`.
"""

import os
from dotenv import load_dotenv

load_dotenv()

INTERCOM_API_URL = os.getenv("INTERCOM_API_URL", "https://api.intercom.io").rstrip("/")
INTERCOM_API_VERSION = os.getenv("INTERCOM_API_VERSION", "2.11")
INTERCOM_TIMEOUT_SECONDS = float(os.getenv("INTERCOM_TIMEOUT_SECONDS", "30"))

# Key file fallback when `INTERCOM_ACCESS_TOKEN` is unset.
INTERCOM_KEY_FILE = os.getenv("INTERCOM_KEY_FILE", "config/intercom.key")


def load_access_token(path=None):
    """Load the Intercom access token from environment or key file.

    Resolution order:
        1. `INTERCOM_ACCESS_TOKEN` environment variable.
        2. Raw file contents at `path` (default `INTERCOM_KEY_FILE`).

    Returns:
        Token string or `None` when not available.

    Edge cases:
        - Missing or empty file returns `None`.
        - Whitespace-only values count as missing.
    """
    env_value = os.getenv("INTERCOM_ACCESS_TOKEN", "").strip()
    if env_value:
        return env_value

    path = path or INTERCOM_KEY_FILE
    if not path or not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None
