from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    data: Optional[Any] = None
    request_id: Optional[str] = Field(None, alias="requestId")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
