from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.created_at.isoformat(),
        }


@dataclass(eq=False)
class ConversationSession:
    """
    One conversation held in memory.

    `turns` is append-only; the session lock must be held to touch it,
    `last_activity_at` or `in_flight`. A session with requests in flight
    is never swept.
    """
    id: str
    owner_id: Optional[str]
    created_at: datetime
    last_activity_at: datetime
    turns: list[ConversationTurn] = field(default_factory=list)
    in_flight: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def message_count(self) -> int:
        with self.lock:
            return len(self.turns)

    def snapshot(self) -> list[ConversationTurn]:
        with self.lock:
            return list(self.turns)

    def session_age_minutes(self, now: datetime) -> int:
        return int((now - self.created_at).total_seconds() // 60)
