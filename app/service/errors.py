class AppError(Exception):
    """Base application error"""


class RelayError(AppError):
    """The n8n webhook call failed (transport, status or payload)"""

    def __init__(self, message: str, status_code: int | None = None, conversation_id: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.conversation_id = conversation_id


class ConversationNotFoundError(AppError):
    """Conversation id is unknown or expired"""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id


class SessionNotRegisteredError(AppError):
    """Turn appended to a session that is not held by the store"""


class UnauthorizedError(AppError):
    """Missing or wrong shared API key"""
