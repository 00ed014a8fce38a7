import logging
from datetime import timedelta
from typing import Optional

import app.config.config as configs
from app.client.n8n.webhook import call_chat_webhook
from app.model.chat.chat_request import ChatRequest
from app.model.chat.chat_response import ChatResponse
from app.model.conversation.conversation_response import ConversationHistory
from app.service.context.context_window import recent_turns
from app.service.context.session_manager import SessionManager
from app.service.context.session_store import SessionStore
from app.service.errors import RelayError

logger = logging.getLogger(__name__)

session_manager = SessionManager(
    SessionStore(),
    timeout=timedelta(minutes=configs.CHAT_SESSION_TIMEOUT_MINUTES),
)


def _preview(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def start_conversation(user_id: Optional[str]) -> str:
    return session_manager.start_new_conversation(user_id)


def conversation_history(conversation_id: str) -> ConversationHistory:
    # raises ConversationNotFoundError for unknown or expired ids
    session = session_manager.get_session(conversation_id)
    return ConversationHistory.from_session(session)


async def chat_service(req: ChatRequest, request_id: str) -> ChatResponse:
    """
    Relay one user message to the chat webhook.

    The user turn and the reply are recorded together only after the relay
    succeeds, so a failed call leaves the conversation as it was.
    """
    logger.info(
        "chat message request_id=%s conversation_id=%s message=%s",
        request_id,
        req.conversation_id,
        _preview(req.message),
    )
    with session_manager.conversation_scope(req.conversation_id, req.user_id) as session:
        history = recent_turns(session, configs.CHAT_CONTEXT_WINDOW_SIZE)

        try:
            reply = await call_chat_webhook(
                req.message,
                history,
                session.id,
                request_id,
                user_id=req.user_id,
                message_count=session.message_count,
                session_age_minutes=session.session_age_minutes(session_manager.now()),
            )
        except RelayError as e:
            logger.warning("chat relay failed request_id=%s conversation_id=%s", request_id, session.id)
            raise RelayError(str(e), status_code=e.status_code, conversation_id=session.id) from e

        session_manager.append_exchange(session, req.message, reply)

    logger.info("chat message processed request_id=%s conversation_id=%s", request_id, session.id)
    return ChatResponse.ok(reply, session.id)


def active_conversations() -> int:
    return len(session_manager.store)


def sweep_expired_conversations() -> int:
    return session_manager.sweep_expired()
