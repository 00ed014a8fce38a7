from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Optional

from app.service.context.session import ConversationSession


class SessionStore:
    """
    Process-local registry of conversation sessions keyed by conversation id.

    The store lock only covers the dict itself. Session contents are guarded
    by each session's own lock, so work on one conversation never waits on
    another.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._lock = threading.Lock()

    def put(self, conversation_id: str, session: ConversationSession) -> None:
        with self._lock:
            self._sessions[conversation_id] = session

    def get(self, conversation_id: str) -> Optional[ConversationSession]:
        with self._lock:
            return self._sessions.get(conversation_id)

    def remove_if(self, predicate: Callable[[ConversationSession], bool]) -> list[str]:
        with self._lock:
            doomed = [cid for cid, s in self._sessions.items() if predicate(s)]
            for cid in doomed:
                del self._sessions[cid]
        return doomed

    def __contains__(self, conversation_id: object) -> bool:
        with self._lock:
            return conversation_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
