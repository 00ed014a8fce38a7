import logging
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

import app.config.config as configs
from app.service.context.session import ConversationTurn
from app.service.errors import RelayError

logger = logging.getLogger(__name__)
n8n_client = httpx.AsyncClient(timeout=float(configs.N8N_TIMEOUT_SECONDS))

EMPTY_REPLY = "I apologize, but I didn't receive a proper response. Please try again."
REPLY_FIELDS = ("response", "message", "text", "output")
SOURCE = "n8n-chat-relay"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _headers(request_id: Optional[str], request_type: str) -> dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "X-Request-Type": request_type,
        "User-Agent": configs.USER_AGENT,
    }
    if request_id:
        headers["X-Request-ID"] = request_id
    return headers


def build_chat_payload(
    message: str,
    history: Sequence[ConversationTurn],
    conversation_id: str,
    request_id: str,
    user_id: Optional[str] = None,
    message_count: int = 0,
    session_age_minutes: int = 0,
) -> dict[str, Any]:
    return {
        "type": "chat",
        "chat": {
            "message": message,
            "conversationId": conversation_id,
            "userId": user_id,
            "messageHistory": [turn.to_dict() for turn in history],
        },
        "metadata": {
            "requestId": request_id,
            "timestamp": _now_iso(),
            "source": SOURCE,
            "messageCount": message_count,
            "sessionAge": session_age_minutes,
        },
    }


def extract_reply(body: Any) -> str:
    """
    n8n workflows answer in whatever shape the last node produced.
    Take the first known reply field, otherwise the body as text.
    """
    if body is None:
        return EMPTY_REPLY
    if isinstance(body, list):
        if not body:
            return EMPTY_REPLY
        if isinstance(body[0], dict):
            body = body[0]
    if isinstance(body, dict):
        for key in REPLY_FIELDS:
            if key in body and body[key] is not None:
                return str(body[key])
    return str(body)


async def _post(url: str, payload: dict[str, Any], request_id: Optional[str], request_type: str) -> httpx.Response:
    started = time.perf_counter()
    try:
        response = await n8n_client.post(url, json=payload, headers=_headers(request_id, request_type))
    except httpx.HTTPError as e:
        logger.exception("n8n request failed request_id=%s url=%s", request_id, url)
        raise RelayError(f"n8n request failed: {e}") from e

    duration_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "n8n response request_id=%s status=%s duration=%sms",
        request_id,
        response.status_code,
        duration_ms,
    )
    if response.status_code >= 400:
        logger.warning("n8n error status=%s body=%s", response.status_code, response.text[:500])
        raise RelayError(f"n8n returned status {response.status_code}", status_code=response.status_code)
    return response


def _decode(response: httpx.Response) -> Any:
    if not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError as e:
        raise RelayError("n8n returned a body that is not JSON", status_code=response.status_code) from e


async def call_chat_webhook(
    message: str,
    history: Sequence[ConversationTurn],
    conversation_id: str,
    request_id: str,
    *,
    user_id: Optional[str] = None,
    message_count: int = 0,
    session_age_minutes: int = 0,
) -> str:
    payload = build_chat_payload(
        message,
        history,
        conversation_id,
        request_id,
        user_id=user_id,
        message_count=message_count,
        session_age_minutes=session_age_minutes,
    )
    response = await _post(configs.N8N_CHAT_WEBHOOK_URL, payload, request_id, "chat")
    return extract_reply(_decode(response))


async def trigger_webhook(data: dict[str, Any], request_id: str) -> Any:
    payload = {
        "data": data,
        "metadata": {
            "requestId": request_id,
            "timestamp": _now_iso(),
            "source": SOURCE,
        },
    }
    response = await _post(configs.N8N_WEBHOOK_URL, payload, request_id, "trigger")
    return _decode(response)


async def ping_webhook(url: str, request_type: str = "test") -> bool:
    payload = {
        "test": True,
        "type": f"{request_type}-connection-test",
        "message": "Connection test from n8n chat relay",
        "timestamp": _now_iso(),
    }
    try:
        response = await n8n_client.post(url, json=payload, headers=_headers(None, "test"))
    except httpx.HTTPError:
        logger.exception("n8n connection test failed url=%s", url)
        return False
    ok = response.is_success
    logger.debug("n8n connection test url=%s status=%s ok=%s", url, response.status_code, ok)
    return ok


async def close_clients() -> None:
    await n8n_client.aclose()
