from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.service.context.session import ConversationSession, ConversationTurn, Role
from app.service.context.session_store import SessionStore
from app.service.errors import ConversationNotFoundError, SessionNotRegisteredError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_conversation_id() -> str:
    return f"conv-{uuid.uuid4()}"


class SessionManager:
    """
    Creates, resolves, updates and expires conversation sessions.

    Expiry is enforced in two places: lookups never hand out a session idle
    for longer than `timeout`, and `sweep_expired` physically drops them.
    Sweeps piggyback on conversation creation.
    """

    def __init__(
        self,
        store: SessionStore,
        timeout: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.timeout = timeout
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    # ---------- Sessions ----------
    def start_new_conversation(self, owner_id: Optional[str] = None) -> str:
        now = self.now()
        conversation_id = new_conversation_id()
        session = ConversationSession(
            id=conversation_id,
            owner_id=owner_id,
            created_at=now,
            last_activity_at=now,
        )
        self.store.put(conversation_id, session)
        logger.info("started conversation conversation_id=%s user_id=%s", conversation_id, owner_id)

        self._sweep_quietly()
        return conversation_id

    def resolve_or_create_session(
        self, conversation_id: Optional[str], owner_id: Optional[str] = None
    ) -> ConversationSession:
        """
        Unknown or expired ids silently start a fresh conversation.
        Callers must read the returned session's id.
        """
        if conversation_id:
            session = self.store.get(conversation_id)
            if session is not None and not self.is_expired(session):
                return session
            logger.info("conversation_id=%s not live, starting a new one", conversation_id)

        new_id = self.start_new_conversation(owner_id)
        session = self.store.get(new_id)
        if session is None:
            # only possible if a sweep with a non-positive timeout ran in between
            raise SessionNotRegisteredError(f"Session vanished right after creation: {new_id}")
        return session

    @contextmanager
    def conversation_scope(
        self, conversation_id: Optional[str], owner_id: Optional[str] = None
    ) -> Iterator[ConversationSession]:
        """
        Resolve (or create) a session and pin it for the duration of the block,
        so the expiry sweep leaves it alone while a relay call is pending.
        """
        session = self._pin(conversation_id, owner_id)
        try:
            yield session
        finally:
            with session.lock:
                session.in_flight -= 1

    def _pin(self, conversation_id: Optional[str], owner_id: Optional[str]) -> ConversationSession:
        session = self.resolve_or_create_session(conversation_id, owner_id)
        with session.lock:
            session.in_flight += 1
        if self.store.get(session.id) is session:
            return session

        # swept between lookup and pin; it was already expired, so start over
        with session.lock:
            session.in_flight -= 1
        session = self.resolve_or_create_session(None, owner_id)
        with session.lock:
            session.in_flight += 1
        return session

    def get_session(self, conversation_id: str) -> ConversationSession:
        session = self.store.get(conversation_id)
        if session is None or self.is_expired(session):
            raise ConversationNotFoundError(conversation_id)
        return session

    def is_expired(self, session: ConversationSession, now: Optional[datetime] = None) -> bool:
        cutoff = (now or self.now()) - self.timeout
        return session.last_activity_at < cutoff

    # ---------- Turns ----------
    def append_turn(self, session: ConversationSession, role: Role, content: str) -> ConversationTurn:
        self._ensure_registered(session)
        with session.lock:
            return self._append_locked(session, Role(role), content)

    def append_exchange(
        self, session: ConversationSession, user_content: str, reply: str
    ) -> tuple[ConversationTurn, ConversationTurn]:
        """Append a user turn and its assistant reply as one contiguous pair."""
        self._ensure_registered(session)
        with session.lock:
            user_turn = self._append_locked(session, Role.USER, user_content)
            assistant_turn = self._append_locked(session, Role.ASSISTANT, reply)
        return user_turn, assistant_turn

    def _append_locked(self, session: ConversationSession, role: Role, content: str) -> ConversationTurn:
        now = self.now()
        # keep timestamps monotonic per session even if the clock steps back
        if now < session.last_activity_at:
            now = session.last_activity_at
        turn = ConversationTurn(role=role, content=content, created_at=now)
        session.turns.append(turn)
        session.last_activity_at = now
        return turn

    def _ensure_registered(self, session: ConversationSession) -> None:
        if self.store.get(session.id) is not session:
            raise SessionNotRegisteredError(f"Session is not registered in the store: {session.id}")

    # ---------- Expiry ----------
    def sweep_expired(self, timeout: Optional[timedelta] = None) -> int:
        cutoff = self.now() - (self.timeout if timeout is None else timeout)
        removed = self.store.remove_if(lambda s: s.in_flight == 0 and s.last_activity_at < cutoff)
        for conversation_id in removed:
            logger.debug("removed expired conversation conversation_id=%s", conversation_id)
        return len(removed)

    def _sweep_quietly(self) -> None:
        try:
            removed = self.sweep_expired()
            if removed:
                logger.info("expiry sweep removed %s conversations", removed)
        except Exception:
            logger.exception("expiry sweep failed")
