"""Intercom provider adapter package.

Scope:
    Configuration, async HTTP transport, contact resolution, and conversation
    create/reply/fetch calls against the Intercom REST API.

Non-goals:
    - No local copy of contacts or conversations.
    - No retry policy; callers decide.
"""
