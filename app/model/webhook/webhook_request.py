from pydantic import BaseModel, Field
from typing import Any, Optional


class WebhookRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Name of the submitter")
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Contact email")
    message: Optional[str] = None
    data: Optional[Any] = None
