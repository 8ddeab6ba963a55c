"""Support-chat API adapter package.

Architectural role:
- Defines the external interaction boundary for HTTP and terminal interfaces.
- Performs transport-level validation and response shaping.
- Delegates provider work to `app.intercom`.
"""
