from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., max_length=4000, description="User's message to relay to the workflow")
    conversation_id: Optional[str] = Field(None, alias="conversationId", description="Conversation to continue; a new one is started when unknown")
    user_id: Optional[str] = Field(None, alias="userId", description="Caller-supplied owner identifier")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message cannot be blank")
        return v
