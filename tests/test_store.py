"""Tests for SQLite session storage."""

from datetime import datetime, timezone

import pytest

from vkyc.sessions.errors import ConflictError, UnavailableError
from vkyc.sessions.models import Recording, Session, SessionStatus
from vkyc.sessions.store import SessionStore


def _session(agent_id, **kwargs):
    return Session(customer_name="Bob", application_id="APP9", agent_id=agent_id, **kwargs)


class TestSessionStore:
    def test_insert_and_get(self, store, agent):
        stored = store.insert_session(_session(agent.id, notes="first call"))

        retrieved = store.get_session(stored.id)
        assert retrieved is not None
        assert retrieved.customer_name == "Bob"
        assert retrieved.status == SessionStatus.PENDING
        assert retrieved.notes == "first call"
        assert retrieved.is_recording is False
        assert retrieved.created_at == stored.created_at

    def test_get_nonexistent(self, store):
        assert store.get_session("nonexistent") is None

    def test_list_newest_first(self, store, agent):
        for day in range(1, 4):
            store.insert_session(
                _session(agent.id, created_at=datetime(2026, 3, day, tzinfo=timezone.utc))
            )

        sessions = store.list_sessions()
        assert [s.created_at.day for s in sessions] == [3, 2, 1]

    def test_list_by_status(self, store, agent):
        store.insert_session(_session(agent.id))
        store.insert_session(_session(agent.id, status=SessionStatus.ACTIVE))

        active = store.list_sessions(status=SessionStatus.ACTIVE)
        assert len(active) == 1
        assert active[0].status == SessionStatus.ACTIVE

    def test_update_rejects_unknown_columns(self, store, agent):
        s = store.insert_session(_session(agent.id))
        with pytest.raises(ValueError):
            store.update_session(s.id, customer_name="Mallory")

    def test_update_missing_session(self, store):
        assert not store.update_session("nonexistent", notes="x")

    def test_compare_and_set_status(self, store, agent):
        s = store.insert_session(_session(agent.id))

        assert not store.compare_and_set_status(s.id, SessionStatus.ACTIVE, SessionStatus.COMPLETED)
        assert store.compare_and_set_status(s.id, SessionStatus.PENDING, SessionStatus.ACTIVE)
        assert store.get_session(s.id).status == SessionStatus.ACTIVE

    def test_duplicate_token_conflicts(self, store, agent):
        a = store.insert_session(_session(agent.id))
        b = store.insert_session(_session(agent.id))
        store.update_session(a.id, invite_token="abc123")

        with pytest.raises(ConflictError):
            store.update_session(b.id, invite_token="abc123")
        assert store.get_session(b.id).invite_token is None

    def test_second_open_recording_conflicts(self, store, agent):
        s = store.insert_session(_session(agent.id))
        store.insert_recording(Recording(room_id=s.id, file_name="a.mp4"))

        with pytest.raises(ConflictError):
            store.insert_recording(Recording(room_id=s.id, file_name="b.mp4"))
        assert len(store.list_recordings(s.id)) == 1

    def test_delete_cascades_to_recordings(self, store, agent):
        s = store.insert_session(_session(agent.id))
        store.insert_recording(Recording(room_id=s.id, file_name="a.mp4"))

        assert store.delete_session(s.id)
        assert store.get_session(s.id) is None
        assert store.list_recordings(s.id) == []
        assert not store.delete_session(s.id)

    def test_transaction_rolls_back_on_error(self, store, agent):
        s = store.insert_session(_session(agent.id))

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.update_session(s.id, notes="half written")
                raise RuntimeError("boom")

        assert store.get_session(s.id).notes is None

    def test_recorded_session_ids(self, store, agent):
        a = store.insert_session(_session(agent.id))
        store.insert_session(_session(agent.id))
        store.insert_recording(Recording(room_id=a.id, file_name="a.mp4"))

        assert store.recorded_session_ids() == {a.id}

    def test_agent_names(self, store, agent):
        assert store.agent_names() == {agent.id: "Default Agent"}

    def test_unopenable_database_is_unavailable(self, tmp_path):
        # a directory cannot be opened as a database file
        s = SessionStore(db_path=tmp_path)
        with pytest.raises(UnavailableError):
            s.get_session("anything")
        s.close()
