"""Client-side chat session state with local persistence.

Purpose of this abstraction:
    Track the active conversation handle and user identity for one chat client and
    mirror them to disk (`intercom_session.json` by default) so a restarted client
    resumes the same Intercom conversation.

Conversation lifecycle:
    NONE -> (send) -> PENDING_CREATE -> OPEN, and OPEN -> (send) -> OPEN.
    A failed create returns to NONE. There is no CLOSE transition; closing is
    provider-owned and only visible through the fetched `state` field.

Authority:
    The message list kept here is a display cache. The remote conversation is the
    source of truth and replaces it on every successful response.
"""

import os
import json
import threading
import logging


logger = logging.getLogger(__name__)


NONE = "NONE"
PENDING_CREATE = "PENDING_CREATE"
OPEN = "OPEN"


class ChatSession:
    """Conversation handle, user identity and last rendered messages."""

    def __init__(self, path):
        self.path = path
        self.user_id = None
        self.conversation_id = None
        self.messages = []
        self.phase = NONE
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path):
        """Restore a session from `path`; a missing or unreadable file yields an empty one."""
        session = cls(path)
        if not os.path.exists(path):
            return session

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.exception("Failed to load chat session from %s", path)
            return session

        if isinstance(data, dict):
            session.user_id = data.get("user_id") or None
            session.conversation_id = data.get("conversation_id") or None
            session.messages = list(data.get("messages") or [])
            session.phase = OPEN if session.conversation_id else NONE
        return session

    def save(self):
        with self._lock:
            self._write()

    def _write(self):
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({
                    "user_id": self.user_id,
                    "conversation_id": self.conversation_id,
                    "messages": self.messages,
                }, f, ensure_ascii=False, indent=2)
        except OSError:
            logger.exception("Failed to persist chat session to %s", self.path)

    def set_user(self, email):
        """Switch identity; the previous user's conversation is dropped."""
        with self._lock:
            self.user_id = email
            self._clear_conversation()
            self._write()

    def reset(self):
        """Start a new chat on the next send."""
        with self._lock:
            self._clear_conversation()
            self._write()

    def _clear_conversation(self):
        self.conversation_id = None
        self.messages = []
        self.phase = NONE

    def begin_send(self, content):
        """Append the outgoing message and return the request payload.

        Raises:
            RuntimeError: If no user identity is set.
        """
        if not self.user_id:
            raise RuntimeError("No user set for this chat session")

        with self._lock:
            if self.phase == NONE:
                self.phase = PENDING_CREATE
            self.messages.append({"role": "user", "content": content, "userId": self.user_id})
            payload = {"messages": list(self.messages)}
            if self.conversation_id:
                payload["conversationId"] = self.conversation_id
            return payload

    def apply_response(self, data, ok):
        """Store a Send/Fetch response body.

        On success the conversation id and flattened messages replace local state.
        On failure the returned messages (history plus apology) are kept for
        display and a pending create falls back to NONE.
        """
        with self._lock:
            if "messages" in data:
                self.messages = list(data["messages"])

            if ok and data.get("conversationId"):
                self.conversation_id = data["conversationId"]
                self.phase = OPEN
            elif self.phase == PENDING_CREATE:
                self.phase = NONE

            self._write()
