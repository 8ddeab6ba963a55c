"""
Interactive terminal chat over the Intercom support-chat proxy.

Architectural role:
- Plays the UI collaborator: holds the user identity and conversation handle
  in `app.session.session_state.ChatSession` and calls the HTTP API.
- Renders the flattened message list returned by the proxy.

Request lifecycle (per user turn):
1. Read a single line from stdin.
2. Handle local control commands (`exit`/`quit`, `/new`, `/refresh`, `/user`).
3. Send the message with the full local history and current conversation id.
4. Replace local history with the returned messages and render new ones.

Input validation behavior:
- Empty input is ignored and does not call the API.
- An email is requested at startup when none is saved.

Error handling strategy:
- Failed sends still render, since the proxy returns history plus an apology.
- Unreachable API errors are printed; the session keeps its state.
- EOF and keyboard interrupts end the loop without traceback output.
"""

import sys
import logging
from datetime import datetime

from app.session import api_client
from app.session.config import CHAT_API_URL, CHAT_SESSION_PATH
from app.session.session_state import ChatSession


logger = logging.getLogger(__name__)


def format_message(message):
    """Render one flattened message as a terminal line."""
    label = "You" if message.get("role") == "user" else "Support"
    ts = message.get("timestamp")
    stamp = f" ({datetime.fromtimestamp(ts).strftime('%H:%M')})" if ts else ""
    return f"{label}{stamp}: {message.get('content', '')}"


def render(messages, start=0):
    for message in messages[start:]:
        print(format_message(message))


def refresh(session, base_url=CHAT_API_URL):
    """Reload the active conversation from the proxy; returns False on failure."""
    if not session.conversation_id:
        return False
    try:
        ok, data = api_client.fetch_conversation(session.conversation_id, base_url=base_url)
    except RuntimeError as err:
        print(err)
        return False
    if not ok:
        print(f"Could not load conversation: {data.get('error')}")
        return False
    session.apply_response(data, ok=True)
    state = (data.get("conversation") or {}).get("state")
    if state == "closed":
        print("This conversation has been closed by support. Type /new to start another.")
    return True


def unseen_messages(before, after):
    """Return messages of `after` whose provider id does not occur in `before`."""
    seen = {m.get("id") for m in before if m.get("id")}
    return [m for m in after if not m.get("id") or m.get("id") not in seen]


def send(session, content, base_url=CHAT_API_URL):
    """Send one message and render what the proxy returned that is new."""
    before = list(session.messages)
    payload = session.begin_send(content)
    try:
        ok, data = api_client.send_messages(payload, base_url=base_url)
    except RuntimeError as err:
        # Keep the unsent message in history so it stays visible.
        session.apply_response({"messages": payload["messages"]}, ok=False)
        print(f"Not sent: {content}")
        print(err)
        return False

    session.apply_response(data, ok=ok)
    if ok:
        render(unseen_messages(before, session.messages))
    else:
        # Failed sends echo the request history, so anything past it is new.
        render(session.messages[len(payload["messages"]):])
        logger.warning("Send failed: %s", data.get("error"))
    return ok


def main():
    """Run the interactive terminal session."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if hasattr(sys.stdout, "reconfigure"):
        try:
            sys.stdout.reconfigure(encoding="utf-8", errors="ignore")
        except (AttributeError, ValueError, OSError):
            pass

    session = ChatSession.load(CHAT_SESSION_PATH)

    try:
        while not session.user_id:
            email = input("Your email: ").strip()
            if email:
                session.set_user(email)
    except (EOFError, KeyboardInterrupt):
        print()
        return

    print(f"Support chat as {session.user_id}. (Type 'exit' to quit, '/new' for a new chat)\n")
    print("-" * 60)

    if refresh(session):
        render(session.messages)

    while True:
        try:
            text = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not text:
            continue

        if text.lower() in ("exit", "quit"):
            break

        if text == "/new":
            session.reset()
            print("Started a new chat.")
            continue

        if text == "/refresh":
            if refresh(session):
                render(session.messages)
            continue

        if text.startswith("/user "):
            session.set_user(text[len("/user "):].strip() or session.user_id)
            print(f"Now chatting as {session.user_id}.")
            continue

        send(session, text)


if __name__ == "__main__":
    main()
