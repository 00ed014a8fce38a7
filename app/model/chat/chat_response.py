from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    response: Optional[str] = Field(None, description="Workflow reply text")
    conversation_id: Optional[str] = Field(None, alias="conversationId", description="Conversation the reply belongs to")
    timestamp: str = Field(default_factory=_now_iso)
    data: Optional[Any] = None

    @classmethod
    def ok(cls, reply: str, conversation_id: str) -> "ChatResponse":
        return cls(success=True, message="Chat message processed successfully", response=reply, conversation_id=conversation_id)

    @classmethod
    def error(cls, message: str) -> "ChatResponse":
        return cls(success=False, message=message)
