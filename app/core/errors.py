"""Error taxonomy shared by the Intercom adapter and the HTTP boundary.

Propagation policy:
    The identity resolver and conversation adapter raise these errors and never
    swallow them. `app.api.http_api` is the only layer that converts them into
    HTTP responses, using `status_code` as the default mapping.
"""


class ProxyError(Exception):
    """Base class for request-scoped failures of the chat proxy."""

    status_code = 500


class ConfigurationError(ProxyError):
    """Raised when the Intercom credential is not configured."""

    status_code = 500


class InvalidRequest(ProxyError):
    """Raised when a caller supplies structurally invalid input."""

    status_code = 400


class UpstreamError(ProxyError):
    """Raised when Intercom answers non-2xx or the network call fails.

    Attributes:
        status: Provider HTTP status, or `0` when no response was received.
        body: Raw response text (or transport error text).
    """

    status_code = 500

    def __init__(self, status: int, body: str, message: str | None = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Intercom request failed with status {status}: {body}")
