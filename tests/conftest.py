from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

import app.service.chat.chat as chat_module
from app.main import app
from app.service.context.session_manager import SessionManager
from app.service.context.session_store import SessionStore


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
def manager(clock):
    return SessionManager(SessionStore(), timeout=timedelta(minutes=60), clock=clock)


#scope : function < class < module < package < session
@pytest.fixture(scope="function")
def client(monkeypatch, manager):
    monkeypatch.delenv("N8N_API_KEY", raising=False)
    monkeypatch.setattr(chat_module, "session_manager", manager)
    return TestClient(app)
