import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import app.config.config as configs
from app.api.deps import require_api_key
from app.model.chat.chat_request import ChatRequest
from app.model.chat.chat_response import ChatResponse
from app.model.common.api_response import ApiResponse
from app.model.conversation.conversation_response import NewConversation
from app.model.webhook.webhook_request import WebhookRequest
from app.service.chat.chat import active_conversations, chat_service, conversation_history, start_conversation
from app.service.errors import ConversationNotFoundError, RelayError
from app.service.webhook.webhook import chat_webhook_connected, trigger_service, webhook_connected

logger = logging.getLogger(__name__)
api_router = APIRouter()


def _new_request_id() -> str:
    return str(uuid.uuid4())


def _json(status_code: int, body: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True, exclude_none=True))


# ---------- chat ----------
@api_router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True, dependencies=[Depends(require_api_key)])
async def send_message(req: ChatRequest):
    request_id = _new_request_id()
    try:
        return await chat_service(req, request_id)
    except RelayError as e:
        resp = ChatResponse.error(f"Failed to process chat message: {e}")
        resp.conversation_id = e.conversation_id
        return _json(502, resp)
    except Exception as e:
        logger.exception("chat message failed request_id=%s", request_id)
        return _json(500, ChatResponse.error(f"Failed to process chat message: {e}"))


@api_router.post("/chat/new", response_model=ApiResponse, response_model_exclude_none=True, dependencies=[Depends(require_api_key)])
def new_conversation(user_id: str = Query(default="anonymous", alias="userId")):
    request_id = _new_request_id()
    conversation_id = start_conversation(user_id)
    data = NewConversation(conversation_id=conversation_id, user_id=user_id)
    logger.info("new conversation request_id=%s conversation_id=%s", request_id, conversation_id)
    return ApiResponse(
        success=True,
        message="New conversation started successfully",
        data=data.model_dump(by_alias=True),
        request_id=request_id,
    )


@api_router.get("/chat/history/{conversation_id}", response_model=ApiResponse, response_model_exclude_none=True, dependencies=[Depends(require_api_key)])
def chat_history(conversation_id: str):
    request_id = _new_request_id()
    try:
        history = conversation_history(conversation_id)
    except ConversationNotFoundError:
        logger.warning("conversation not found request_id=%s conversation_id=%s", request_id, conversation_id)
        return _json(404, ApiResponse(success=False, message="Conversation not found", request_id=request_id))

    logger.info(
        "chat history request_id=%s conversation_id=%s message_count=%s",
        request_id,
        conversation_id,
        history.message_count,
    )
    return ApiResponse(
        success=True,
        message="Conversation history retrieved",
        data=history.model_dump(mode="json", by_alias=True),
        request_id=request_id,
    )


@api_router.get("/chat/test", response_model=ApiResponse, response_model_exclude_none=True)
async def chat_connection_test():
    request_id = _new_request_id()
    connected = await chat_webhook_connected()
    message = "Chat service and N8N connection test successful" if connected else "Chat service or N8N connection test failed"
    data = {
        "chatServiceConnected": connected,
        "n8nChatWebhookUrl": configs.N8N_CHAT_WEBHOOK_URL,
        "testTimestamp": datetime.now(timezone.utc).isoformat(),
    }
    return _json(200 if connected else 503, ApiResponse(success=connected, message=message, data=data, request_id=request_id))


@api_router.get("/chat/health", response_model=ApiResponse, response_model_exclude_none=True)
def chat_health():
    data = {
        "status": "running",
        "service": "ChatService",
        "n8nChatWebhookUrl": configs.N8N_CHAT_WEBHOOK_URL,
        "activeConversations": active_conversations(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return ApiResponse(success=True, message="Chat service is running and healthy", data=data, request_id=_new_request_id())


# ---------- generic webhook ----------
@api_router.post("/trigger", response_model=ApiResponse, response_model_exclude_none=True, dependencies=[Depends(require_api_key)])
async def trigger(req: WebhookRequest):
    request_id = _new_request_id()
    result = await trigger_service(req, request_id)
    logger.info("webhook triggered request_id=%s", request_id)
    return ApiResponse(success=True, message="Webhook triggered successfully", data=result, request_id=request_id)


@api_router.get("/health", response_model=ApiResponse, response_model_exclude_none=True)
def health():
    data = {
        "service": "N8N Integration Platform",
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "webhookUrl": configs.N8N_WEBHOOK_URL,
        "chatWebhookUrl": configs.N8N_CHAT_WEBHOOK_URL,
        "features": ["webhook-triggers", "ai-chat"],
    }
    return ApiResponse(success=True, message="N8N integration service is running with chat functionality", data=data)


@api_router.get("/test", response_model=ApiResponse, response_model_exclude_none=True)
async def connection_test():
    connected = await webhook_connected()
    message = "N8N connection test successful" if connected else "N8N connection test failed"
    return ApiResponse(success=connected, message=message, request_id=_new_request_id())
