import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.http_api import app
from app.intercom import client as intercom_client
from app.intercom import provider_config


class FakeIntercom:
    """In-memory Intercom serving the contact and conversation endpoints."""

    def __init__(self):
        self.contacts = {}
        self.conversations = {}
        self.calls = []
        self.requests = []
        self.clock = 1700000000
        self.fail = {}

    def tick(self):
        self.clock += 10
        return self.clock

    def add_contact(self, email, name=None):
        contact = {
            "type": "contact",
            "id": f"contact-{len(self.contacts) + 1}",
            "role": "user",
            "email": email,
            "name": name or email.split("@")[0],
        }
        self.contacts[email] = contact
        return contact

    def add_conversation(self, contact, body):
        conv_id = f"conv-{len(self.conversations) + 1}"
        conversation = {
            "type": "conversation",
            "id": conv_id,
            "created_at": self.tick(),
            "state": "open",
            "source": {
                "id": f"src-{conv_id}",
                "body": body,
                "author": {"type": "user", "id": contact["id"], "email": contact["email"]},
            },
            "conversation_parts": {"type": "conversation_part.list", "conversation_parts": []},
        }
        self.conversations[conv_id] = conversation
        return conversation

    def add_part(self, conv_id, body, author):
        parts = self.conversations[conv_id]["conversation_parts"]["conversation_parts"]
        part = {
            "id": f"part-{len(parts) + 1}",
            "part_type": "comment",
            "body": body,
            "created_at": self.tick(),
            "author": author,
        }
        parts.append(part)
        return part

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.calls.append((method, path))
        self.requests.append(request)

        if (method, path) in self.fail:
            return httpx.Response(self.fail[(method, path)], json={"errors": [{"code": "boom"}]})

        body = json.loads(request.content) if request.content else {}

        if path == "/contacts" and method == "GET":
            email = request.url.params.get("email")
            found = [self.contacts[email]] if email in self.contacts else []
            return httpx.Response(200, json={"type": "list", "data": found})

        if path == "/contacts" and method == "POST":
            contact = self.add_contact(body["email"], body.get("name"))
            return httpx.Response(200, json=contact)

        if path == "/conversations" and method == "POST":
            contact = next(c for c in self.contacts.values() if c["id"] == body["from"]["id"])
            return httpx.Response(200, json=self.add_conversation(contact, body["body"]))

        segments = path.strip("/").split("/")
        if segments[0] == "conversations" and len(segments) >= 2:
            conv_id = segments[1]
            if conv_id not in self.conversations:
                return httpx.Response(404, json={"errors": [{"code": "not_found"}]})

            if len(segments) == 3 and segments[2] == "parts" and method == "POST":
                contact = next(c for c in self.contacts.values() if c["id"] == body["user_id"])
                author = {"type": "user", "id": contact["id"], "email": contact["email"]}
                self.add_part(conv_id, body["body"], author)
                return httpx.Response(200)

            if len(segments) == 2 and method == "GET":
                return httpx.Response(200, json=self.conversations[conv_id])

        return httpx.Response(404, json={"errors": [{"code": "route_not_found"}]})

    def count(self, method, path):
        return self.calls.count((method, path))


@pytest.fixture
def fake_intercom(monkeypatch):
    fake = FakeIntercom()
    monkeypatch.setenv("INTERCOM_ACCESS_TOKEN", "test-token")
    intercom_client.set_transport(httpx.MockTransport(fake.handler))
    yield fake
    intercom_client.set_transport(None)


@pytest.fixture
def no_credential(monkeypatch, tmp_path):
    fake = FakeIntercom()
    monkeypatch.delenv("INTERCOM_ACCESS_TOKEN", raising=False)
    monkeypatch.setattr(provider_config, "INTERCOM_KEY_FILE", str(tmp_path / "missing.key"))
    intercom_client.set_transport(httpx.MockTransport(fake.handler))
    yield fake
    intercom_client.set_transport(None)


@pytest.fixture
def api():
    return TestClient(app)


@pytest.fixture
def client(fake_intercom):
    return intercom_client.build_client()
