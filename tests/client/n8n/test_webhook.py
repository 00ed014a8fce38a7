import json
from datetime import datetime, timezone

import httpx
import pytest

import app.client.n8n.webhook as webhook_module
from app.service.context.session import ConversationTurn, Role
from app.service.errors import RelayError

CHAT_URL = "http://n8n.test/webhook/chat"


def _use_transport(monkeypatch, handler):
    monkeypatch.setattr(webhook_module, "n8n_client", httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    monkeypatch.setattr(webhook_module.configs, "N8N_CHAT_WEBHOOK_URL", CHAT_URL)


def test_extract_reply_field_priority():
    assert webhook_module.extract_reply({"output": "o", "response": "r"}) == "r"
    assert webhook_module.extract_reply({"message": "m", "text": "t"}) == "m"
    assert webhook_module.extract_reply({"text": "t"}) == "t"
    assert webhook_module.extract_reply({"output": 42}) == "42"


def test_extract_reply_fallbacks():
    assert webhook_module.extract_reply(None) == webhook_module.EMPTY_REPLY
    assert webhook_module.extract_reply([]) == webhook_module.EMPTY_REPLY
    assert webhook_module.extract_reply([{"output": "first"}, {"output": "second"}]) == "first"
    assert webhook_module.extract_reply({"other": 1}) == "{'other': 1}"
    assert webhook_module.extract_reply("plain") == "plain"


@pytest.mark.asyncio
async def test_call_chat_webhook_sends_payload_and_headers(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"output": "hello there"})

    _use_transport(monkeypatch, handler)
    history = [ConversationTurn(role=Role.USER, content="hi", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))]

    reply = await webhook_module.call_chat_webhook(
        "how are you", history, "conv-1", "req-1", user_id="u1", message_count=1, session_age_minutes=3
    )

    assert reply == "hello there"
    assert seen["url"] == CHAT_URL
    assert seen["headers"]["x-request-id"] == "req-1"
    assert seen["headers"]["x-request-type"] == "chat"
    body = seen["body"]
    assert body["type"] == "chat"
    assert body["chat"]["message"] == "how are you"
    assert body["chat"]["conversationId"] == "conv-1"
    assert body["chat"]["userId"] == "u1"
    assert body["chat"]["messageHistory"] == [
        {"role": "user", "content": "hi", "timestamp": "2024-01-01T00:00:00+00:00"}
    ]
    assert body["metadata"]["requestId"] == "req-1"
    assert body["metadata"]["messageCount"] == 1
    assert body["metadata"]["sessionAge"] == 3


@pytest.mark.asyncio
async def test_empty_body_gives_apology_reply(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(200, content=b""))

    reply = await webhook_module.call_chat_webhook("hi", [], "conv-1", "req-1")

    assert reply == webhook_module.EMPTY_REPLY


@pytest.mark.asyncio
async def test_error_status_is_relay_error(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(500, json={"error": "workflow failed"}))

    with pytest.raises(RelayError) as exc_info:
        await webhook_module.call_chat_webhook("hi", [], "conv-1", "req-1")

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_non_json_body_is_relay_error(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(RelayError):
        await webhook_module.call_chat_webhook("hi", [], "conv-1", "req-1")


@pytest.mark.asyncio
async def test_transport_failure_is_relay_error(monkeypatch):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    _use_transport(monkeypatch, handler)

    with pytest.raises(RelayError):
        await webhook_module.call_chat_webhook("hi", [], "conv-1", "req-1")


@pytest.mark.asyncio
async def test_ping_webhook(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(204))
    assert await webhook_module.ping_webhook(CHAT_URL) is True

    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    _use_transport(monkeypatch, handler)
    assert await webhook_module.ping_webhook(CHAT_URL) is False
