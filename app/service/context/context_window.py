from app.service.context.session import ConversationSession, ConversationTurn


def recent_turns(session: ConversationSession, k: int) -> list[ConversationTurn]:
    """
    Return the last `k` turns, oldest first.
    Slicing the tail copies only the selected turns, not the whole history.
    """
    if k <= 0:
        return []
    with session.lock:
        start = max(0, len(session.turns) - k)
        return session.turns[start:]
