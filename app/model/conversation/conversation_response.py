from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.service.context.session import ConversationSession


class MessageItem(BaseModel):
    role: str
    content: str
    timestamp: datetime


class ConversationHistory(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(..., alias="conversationId")
    messages: List[MessageItem]
    message_count: int = Field(..., alias="messageCount")
    created_at: datetime = Field(..., alias="createdAt")
    last_activity: datetime = Field(..., alias="lastActivity")

    @classmethod
    def from_session(cls, session: ConversationSession) -> "ConversationHistory":
        with session.lock:
            turns = list(session.turns)
            last_activity = session.last_activity_at
        return cls(
            conversation_id=session.id,
            messages=[MessageItem(role=t.role.value, content=t.content, timestamp=t.created_at) for t in turns],
            message_count=len(turns),
            created_at=session.created_at,
            last_activity=last_activity,
        )


class NewConversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(..., alias="conversationId")
    user_id: Optional[str] = Field(None, alias="userId")
    status: str = "active"
