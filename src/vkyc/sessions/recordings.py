"""Recording ledger: start/stop of captured segments per session."""

import logging
from datetime import datetime
from typing import Callable

from vkyc.sessions.errors import ConflictError, NotFoundError
from vkyc.sessions.models import Recording, utcnow
from vkyc.sessions.store import SessionStore

logger = logging.getLogger(__name__)


def recording_file_name(session_id: str, started_at: datetime) -> str:
    return f"recording_{session_id}_{int(started_at.timestamp() * 1000)}.mp4"


class RecordingLedger:
    """Keeps `Session.is_recording` in step with the open recording segment.

    Both the segment row and the flag are written in one transaction, so
    `is_recording` is true exactly when one segment has no end time.
    """

    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def start(self, session_id: str) -> str:
        """Open a new segment and return its id.

        Raises:
            NotFoundError: the session does not exist.
            ConflictError: a segment is already open for the session.
        """
        with self.store.transaction():
            if self.store.get_session(session_id) is None:
                raise NotFoundError("Session", session_id)
            if self.store.find_open_recording(session_id) is not None:
                raise ConflictError(f"Session {session_id} is already recording")

            started_at = self.clock()
            recording = Recording(
                room_id=session_id,
                file_name=recording_file_name(session_id, started_at),
                started_at=started_at,
            )
            self.store.insert_recording(recording)
            self.store.update_session(session_id, is_recording=True)

        logger.info("Recording %s started for session %s", recording.id, session_id)
        return recording.id

    def stop(self, session_id: str, at: datetime | None = None) -> Recording | None:
        """Close the open segment, if any. Stopping an idle session is a no-op."""
        with self.store.transaction():
            if self.store.get_session(session_id) is None:
                raise NotFoundError("Session", session_id)
            recording = self.store.find_open_recording(session_id)
            if recording is None:
                logger.debug("No open recording for session %s", session_id)
                return None

            recording.ended_at = at or self.clock()
            self.store.close_recording(recording.id, recording.ended_at)
            self.store.update_session(session_id, is_recording=False)

        logger.info("Recording %s stopped for session %s", recording.id, session_id)
        return recording

    def list_for(self, session_id: str) -> list[Recording]:
        return self.store.list_recordings(session_id)
