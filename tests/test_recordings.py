"""Tests for the recording ledger."""

import pytest

from vkyc.sessions.errors import ConflictError, NotFoundError
from vkyc.sessions.recordings import RecordingLedger


@pytest.fixture
def ledger(store, clock):
    return RecordingLedger(store, clock=clock)


def open_segments(store, session_id):
    return [r for r in store.list_recordings(session_id) if r.is_open]


class TestRecordingLedger:
    def test_start_opens_segment(self, ledger, store, session):
        recording_id = ledger.start(session.id)

        [recording] = open_segments(store, session.id)
        assert recording.id == recording_id
        assert recording.file_name.startswith(f"recording_{session.id}_")
        assert recording.file_name.endswith(".mp4")
        assert store.get_session(session.id).is_recording

    def test_double_start_conflicts(self, ledger, store, session):
        ledger.start(session.id)
        with pytest.raises(ConflictError):
            ledger.start(session.id)

        assert len(store.list_recordings(session.id)) == 1
        assert store.get_session(session.id).is_recording

    def test_stop_closes_segment(self, ledger, store, session):
        ledger.start(session.id)
        closed = ledger.stop(session.id)

        assert closed is not None
        assert closed.ended_at > closed.started_at
        assert open_segments(store, session.id) == []
        assert not store.get_session(session.id).is_recording

    def test_stop_without_recording_is_noop(self, ledger, store, session):
        assert ledger.stop(session.id) is None
        assert store.list_recordings(session.id) == []
        assert not store.get_session(session.id).is_recording

    def test_list_newest_first(self, ledger, session):
        first = ledger.start(session.id)
        ledger.stop(session.id)
        second = ledger.start(session.id)
        ledger.stop(session.id)

        assert [r.id for r in ledger.list_for(session.id)] == [second, first]

    def test_flag_tracks_open_segment(self, ledger, store, session):
        for _ in range(3):
            ledger.start(session.id)
            assert store.get_session(session.id).is_recording
            assert len(open_segments(store, session.id)) == 1
            ledger.stop(session.id)
            assert not store.get_session(session.id).is_recording
            assert open_segments(store, session.id) == []

    def test_missing_session(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.start("nonexistent")
        with pytest.raises(NotFoundError):
            ledger.stop("nonexistent")
