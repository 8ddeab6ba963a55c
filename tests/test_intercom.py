import asyncio

import httpx
import pytest

from app.core.errors import ConfigurationError, InvalidRequest, UpstreamError
from app.intercom import client as intercom_client
from app.intercom.client import IntercomClient, build_client
from app.intercom.contacts import default_name, ensure_user
from app.intercom.conversations import (
    create_conversation,
    get_conversation,
    reply_to_conversation,
)
from app.intercom.provider_config import load_access_token


def run(coro):
    return asyncio.run(coro)


# Configuration


def test_load_access_token_prefers_environment(monkeypatch, tmp_path):
    key_file = tmp_path / "intercom.key"
    key_file.write_text("from-file\n")
    monkeypatch.setenv("INTERCOM_ACCESS_TOKEN", "from-env")

    assert load_access_token(str(key_file)) == "from-env"


def test_load_access_token_falls_back_to_key_file(monkeypatch, tmp_path):
    key_file = tmp_path / "intercom.key"
    key_file.write_text("from-file\n")
    monkeypatch.delenv("INTERCOM_ACCESS_TOKEN", raising=False)

    assert load_access_token(str(key_file)) == "from-file"
    assert load_access_token(str(tmp_path / "missing.key")) is None


def test_build_client_without_credential_raises(no_credential):
    with pytest.raises(ConfigurationError):
        build_client()


# Transport


def test_client_sends_bearer_and_version_headers(fake_intercom, client):
    run(client.get("/contacts", params={"email": "a@b.com"}))

    request = fake_intercom.requests[0]
    assert request.headers["Authorization"] == "Bearer test-token"
    assert request.headers["Intercom-Version"]
    assert request.url.params["email"] == "a@b.com"


def test_client_wraps_error_status(fake_intercom, client):
    fake_intercom.fail[("GET", "/conversations/nope")] = 404

    with pytest.raises(UpstreamError) as excinfo:
        run(client.get("/conversations/nope"))

    assert excinfo.value.status == 404
    assert "boom" in excinfo.value.body


def test_client_wraps_transport_failure():
    def explode(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client = IntercomClient("token", transport=httpx.MockTransport(explode))

    with pytest.raises(UpstreamError) as excinfo:
        run(client.get("/contacts"))

    assert excinfo.value.status == 0


# Identity resolver


def test_ensure_user_returns_existing_contact(fake_intercom, client):
    existing = fake_intercom.add_contact("a@b.com", name="Alice")

    contact = run(ensure_user(client, "a@b.com"))

    assert contact == existing
    assert fake_intercom.count("POST", "/contacts") == 0


def test_ensure_user_creates_missing_contact(fake_intercom, client):
    contact = run(ensure_user(client, "new.person@example.com"))

    assert contact["email"] == "new.person@example.com"
    assert contact["name"] == "new.person"
    assert contact["role"] == "user"
    assert fake_intercom.count("POST", "/contacts") == 1


def test_ensure_user_recovers_from_duplicate_create(fake_intercom, client):
    passthrough = fake_intercom.handler
    lookups = []

    def racing(request):
        if request.method == "GET" and request.url.path == "/contacts":
            lookups.append(request)
            if len(lookups) == 2:
                fake_intercom.add_contact("a@b.com")
        if request.method == "POST" and request.url.path == "/contacts":
            return httpx.Response(409, json={"errors": [{"code": "conflict"}]})
        return passthrough(request)

    intercom_client.set_transport(httpx.MockTransport(racing))
    contact = run(ensure_user(build_client(), "a@b.com"))

    assert contact["email"] == "a@b.com"
    assert len(lookups) == 2


def test_ensure_user_propagates_create_failure(fake_intercom, client):
    fake_intercom.fail[("POST", "/contacts")] = 500

    with pytest.raises(UpstreamError) as excinfo:
        run(ensure_user(client, "a@b.com"))

    assert excinfo.value.status == 500


def test_ensure_user_rejects_empty_email(fake_intercom, client):
    with pytest.raises(InvalidRequest):
        run(ensure_user(client, ""))
    assert fake_intercom.calls == []


def test_default_name_uses_local_part():
    assert default_name("jane@example.com") == "jane"
    assert default_name("no-at-sign") == "no-at-sign"


# Conversation adapter


def test_create_conversation_uses_contact_as_source_author(fake_intercom, client):
    conversation = run(create_conversation(client, "a@b.com", "Hi"))

    assert conversation["source"]["body"] == "Hi"
    assert conversation["source"]["author"]["email"] == "a@b.com"
    assert fake_intercom.count("POST", "/conversations") == 1


def test_create_conversation_follows_message_receipt(fake_intercom, client):
    passthrough = fake_intercom.handler

    def receipt(request):
        response = passthrough(request)
        if request.method == "POST" and request.url.path == "/conversations":
            created = response.json()
            return httpx.Response(200, json={
                "type": "user_message", "id": "msg-1", "conversation_id": created["id"],
            })
        return response

    intercom_client.set_transport(httpx.MockTransport(receipt))
    conversation = run(create_conversation(build_client(), "a@b.com", "Hi"))

    assert conversation["id"] == "conv-1"
    assert conversation["source"]["body"] == "Hi"
    assert fake_intercom.count("GET", "/conversations/conv-1") == 1


def test_reply_appends_comment_part_without_returning(fake_intercom, client):
    contact = fake_intercom.add_contact("a@b.com")
    fake_intercom.add_conversation(contact, "Hi")

    assert run(reply_to_conversation(client, "conv-1", "a@b.com", "Any news?")) is None

    posted = fake_intercom.requests[-1]
    assert posted.url.path == "/conversations/conv-1/parts"
    parts = fake_intercom.conversations["conv-1"]["conversation_parts"]["conversation_parts"]
    assert parts[-1]["body"] == "Any news?"


def test_get_conversation_encodes_id(fake_intercom, client):
    with pytest.raises(UpstreamError):
        run(get_conversation(client, "a/b"))

    assert fake_intercom.requests[-1].url.raw_path == b"/conversations/a%2Fb"
