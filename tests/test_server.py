"""Tests for the HTTP surface: chat endpoint, ticket routes and error shape."""

import threading
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from support_bot.config import AppConfig, RateLimitConfig, ServerConfig
from support_bot.conversation.session import SessionResult
from support_bot.rate_limiter import FixedWindowRateLimiter
from support_bot.schemas.classification_schema import Intent
from support_bot.schemas.ticket_schema import TicketUpdate
from support_bot.server import REQUEST_ID_HEADER, create_app
from support_bot.tools.tickets import InMemoryTicketStore
from tests.conftest import make_classification


class StubSession:
    """Records calls and answers with a fixed result."""

    def __init__(self, result=None, error=None, block=None):
        self.result = result or SessionResult(reply="Hi there 👋", classification=make_classification())
        self.error = error
        self.block = block
        self.calls = []

    def handle(self, message, history=None, ticket=None):
        self.calls.append((message, history, ticket))
        if self.block is not None:
            self.block.wait(5)
        if self.error is not None:
            raise self.error
        return self.result


def make_client(session=None, max_requests=100, timeout=5.0):
    config = replace(
        AppConfig(),
        rate_limit=RateLimitConfig(max_requests=max_requests, window_sec=60),
        server=ServerConfig(request_timeout_sec=timeout, worker_threads=2),
    )
    store = InMemoryTicketStore()
    session = session or StubSession()
    app = create_app(session, store, rate_limiter=FixedWindowRateLimiter(config.rate_limit), config=config)
    return TestClient(app), session, store


class TestChatEndpoint:
    def test_answers_message(self):
        client, session, _ = make_client()
        response = client.post("/api", json={
            "message": "hello",
            "context": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hey"}],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["response"] == "Hi there 👋"
        assert body["automated"] is True
        assert body["classification"]["intent"] == "other-general"
        assert body["requestId"] == response.headers[REQUEST_ID_HEADER]
        assert body["requestId"].startswith("req_")
        message, history, ticket = session.calls[0]
        assert message == "hello"
        assert [turn.content for turn in history] == ["hi", "hey"]
        assert ticket is None

    def test_ticket_update_serialized_with_aliases(self):
        result = SessionResult(
            reply="ok",
            classification=make_classification(Intent.ORDER_TRACKING),
            updated_ticket=TicketUpdate(id="TK-1", order_number="1234", email="a@b.com"),
        )
        client, session, _ = make_client(StubSession(result))
        response = client.post("/api", json={"message": "hi", "currentTicket": {"id": "TK-1"}})
        assert response.json()["updatedTicket"] == {
            "id": "TK-1", "orderNumber": "1234", "email": "a@b.com", "name": None,
        }
        assert session.calls[0][2].id == "TK-1"

    def test_wrong_content_type(self):
        client, _, _ = make_client()
        response = client.post("/api", content="hello", headers={"Content-Type": "text/plain"})
        assert response.status_code == 415
        error = response.json()["error"]
        assert error["code"] == "INVALID_CONTENT_TYPE"
        assert error["requestId"] == response.headers[REQUEST_ID_HEADER]
        assert error["timestamp"]

    def test_malformed_json(self):
        client, _, _ = make_client()
        response = client.post("/api", content="{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    @pytest.mark.parametrize("payload", [{}, {"message": ""}, {"message": 5}, {"message": "hi", "context": "x"}])
    def test_invalid_body(self, payload):
        client, session, _ = make_client()
        response = client.post("/api", json=payload)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"
        assert session.calls == []

    def test_rate_limited(self):
        client, session, _ = make_client(max_requests=2)
        codes = [client.post("/api", json={"message": "hi", "clientId": "c1"}).status_code for _ in range(3)]
        assert codes == [200, 200, 429]
        assert client.post("/api", json={"message": "hi", "clientId": "c2"}).status_code == 200
        assert len(session.calls) == 3

    def test_unexpected_error(self):
        client, _, _ = make_client(StubSession(error=RuntimeError("boom")))
        response = client.post("/api", json={"message": "hi"})
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "boom" not in response.text

    def test_timeout(self):
        release = threading.Event()
        client, _, _ = make_client(StubSession(block=release), timeout=0.2)
        try:
            response = client.post("/api", json={"message": "hi"})
        finally:
            release.set()
        assert response.status_code == 408
        assert response.json()["error"]["code"] == "REQUEST_TIMEOUT"


class TestTicketRoutes:
    def test_create_and_fetch_ticket(self):
        client, _, store = make_client()
        created = client.post("/api/tickets", json={"message": "I need help"})
        assert created.status_code == 201
        ticket_id = created.json()["id"]

        fetched = client.get(f"/api/tickets/{ticket_id}")
        assert fetched.status_code == 200
        assert fetched.json()["admin"] is False

        messages = client.get("/api/messages", params={"ticketId": ticket_id}).json()
        assert [(m["sender"], m["text"]) for m in messages] == [("user", "I need help")]
        assert messages[0]["ticketId"] == ticket_id

    def test_unknown_ticket(self):
        client, _, _ = make_client()
        response = client.get("/api/tickets/TK-NOPE")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TICKET_NOT_FOUND"

    def test_messages_require_ticket_id(self):
        client, _, _ = make_client()
        assert client.get("/api/messages").status_code == 400
        assert client.get("/api/messages", params={"ticketId": "TK-NOPE"}).status_code == 404

    def test_admin_toggle(self):
        client, _, store = make_client()
        ticket_id = client.post("/api/tickets", json={"message": "hi"}).json()["id"]
        response = client.post(f"/api/tickets/{ticket_id}/admin", json={"admin": True})
        assert response.status_code == 200
        assert store.get_ticket(ticket_id).admin is True

    def test_create_ticket_validation(self):
        client, _, _ = make_client()
        response = client.post("/api/tickets", json={})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_health(self):
        client, _, _ = make_client()
        response = client.get("/health")
        assert response.json() == {"status": "healthy"}
        assert REQUEST_ID_HEADER in response.headers
