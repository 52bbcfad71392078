"""Shared fixtures: an isolated database and a deterministic clock."""

from datetime import datetime, timedelta, timezone

import pytest

from vkyc.bootstrap import ensure_default_agent
from vkyc.sessions.lifecycle import SessionManager
from vkyc.sessions.store import SessionStore


class FakeClock:
    """Returns a strictly increasing time, one second per call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def store(tmp_path, monkeypatch):
    """Create a SessionStore with a temp database."""
    import vkyc.config as config

    db = tmp_path / "test.db"
    monkeypatch.setattr(config, "VKYC_DIR", tmp_path)
    monkeypatch.setattr(config, "DB_PATH", db)
    s = SessionStore(db_path=db)
    yield s
    s.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def agent(store):
    return ensure_default_agent(store)


@pytest.fixture
def manager(store, clock):
    return SessionManager(store, clock=clock)


@pytest.fixture
def session(manager, agent):
    return manager.create_session("Alice", "APP1", agent.id)
