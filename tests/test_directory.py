"""Tests for session lookups and dashboard counts."""

import pytest

from vkyc.sessions.errors import NotFoundError
from vkyc.sessions.models import SessionStatus


@pytest.fixture
def directory(manager):
    return manager.directory


class TestSessionDirectory:
    def test_get(self, directory, session):
        assert directory.get(session.id).customer_name == "Alice"

    def test_get_missing(self, directory):
        with pytest.raises(NotFoundError):
            directory.get("nonexistent")

    def test_get_with_recordings(self, directory, manager, session):
        manager.toggle_recording(session.id, True)
        detail = directory.get(session.id, with_recordings=True)
        assert len(detail.recordings) == 1
        assert directory.get(session.id).recordings == []

    def test_get_by_token(self, directory, manager, session):
        token = manager.generate_invite(session.id)
        assert directory.get_by_token(token).id == session.id

    def test_get_by_unknown_token(self, directory, manager, session):
        manager.generate_invite(session.id)
        with pytest.raises(NotFoundError):
            directory.get_by_token("0" * 32)
        with pytest.raises(NotFoundError):
            directory.get_by_token("")

    @pytest.mark.parametrize("token", ["\ud800", "caf\u00e9" * 8])
    def test_get_by_non_hex_token(self, directory, manager, session, token):
        manager.generate_invite(session.id)
        with pytest.raises(NotFoundError):
            directory.get_by_token(token)

    def test_list_newest_first(self, directory, manager, agent):
        first = manager.create_session("A", "APP-A", agent.id)
        second = manager.create_session("B", "APP-B", agent.id)
        assert [s.id for s in directory.list_sessions()] == [second.id, first.id]

    def test_list_by_status(self, directory, manager, agent):
        s = manager.create_session("A", "APP-A", agent.id)
        manager.create_session("B", "APP-B", agent.id)
        manager.reject(s.id)
        assert [x.id for x in directory.list_sessions(status=SessionStatus.REJECTED)] == [s.id]

    def test_recordings_for(self, directory, manager, session):
        manager.toggle_recording(session.id, True)
        manager.toggle_recording(session.id, False)
        assert len(directory.recordings_for(session.id)) == 1

    def test_dashboard_counts(self, directory, manager, agent):
        pending = manager.create_session("P", "APP-P", agent.id)
        active = manager.create_session("A", "APP-A", agent.id)
        done = manager.create_session("C", "APP-C", agent.id)
        rejected = manager.create_session("R", "APP-R", agent.id)

        manager.accept(active.id)
        manager.complete(done.id)
        manager.reject(rejected.id)

        manager.set_customer_online(pending.id, True)
        manager.set_customer_online(active.id, True)
        manager.set_customer_online(done.id, True)
        manager.set_customer_online(rejected.id, True)

        manager.toggle_recording(active.id, True)
        manager.toggle_recording(active.id, False)
        manager.toggle_recording(pending.id, True)

        counts = directory.dashboard_counts()
        assert counts.pending == 1
        assert counts.active == 1
        assert counts.completed == 1
        assert counts.waiting_customers == 2
        assert counts.recorded_sessions == 2

    def test_dashboard_empty(self, directory):
        counts = directory.dashboard_counts()
        assert counts.model_dump() == {
            "pending": 0,
            "active": 0,
            "completed": 0,
            "waiting_customers": 0,
            "recorded_sessions": 0,
        }
