"""Session lifecycle manager: the status state machine and its side effects."""

import logging
from datetime import datetime
from typing import Callable

from vkyc import config
from vkyc.sessions.directory import SessionDirectory
from vkyc.sessions.errors import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
)
from vkyc.sessions.locking import SessionLocks
from vkyc.sessions.models import Session, SessionStatus, utcnow
from vkyc.sessions.presence import PresenceTracker
from vkyc.sessions.recordings import RecordingLedger
from vkyc.sessions.status import can_transition, is_terminal, status_label
from vkyc.sessions.store import SessionStore
from vkyc.sessions.tokens import issue_token

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns session status, invite tokens and recording toggles.

    Every mutation runs under the session's lock and inside one store
    transaction, so a failed call leaves the session as it was.
    """

    def __init__(
        self,
        store: SessionStore,
        locks: SessionLocks | None = None,
        clock: Callable[[], datetime] = utcnow,
        issue: Callable[[], str] = issue_token,
    ):
        self.store = store
        self.locks = locks if locks is not None else SessionLocks()
        self.clock = clock
        self.issue = issue
        self.ledger = RecordingLedger(store, clock=clock)
        self.presence = PresenceTracker(store, locks=self.locks, clock=clock)
        self.directory = SessionDirectory(store)

    def _require(self, session_id: str) -> Session:
        session = self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    def create_session(self, customer_name: str, application_id: str, agent_id: str) -> Session:
        """Open a new pending session owned by `agent_id`."""
        customer_name = (customer_name or "").strip()
        application_id = (application_id or "").strip()
        if not customer_name or not application_id:
            raise InvalidInputError("Customer name and application ID are required")
        if not agent_id:
            raise InvalidInputError("Agent ID is required")

        with self.store.transaction():
            if self.store.get_agent(agent_id) is None:
                raise NotFoundError("Agent", agent_id)
            session = Session(
                customer_name=customer_name,
                application_id=application_id,
                agent_id=agent_id,
                created_at=self.clock(),
            )
            self.store.insert_session(session)

        logger.info("Created session %s for application %s", session.id, application_id)
        return session

    def generate_invite(self, session_id: str) -> str:
        """Issue a fresh invite token, replacing any previous one.

        A token that collides with another session's is discarded and a new
        one drawn, up to TOKEN_ISSUE_ATTEMPTS times.
        """
        with self.locks.hold(session_id):
            for attempt in range(1, config.TOKEN_ISSUE_ATTEMPTS + 1):
                token = self.issue()
                try:
                    with self.store.transaction():
                        session = self._require(session_id)
                        if is_terminal(session.status):
                            raise InvalidStateError(
                                f"Session {session_id} is {status_label(session.status)}; "
                                "no new invite can be issued"
                            )
                        self.store.update_session(session_id, invite_token=token)
                except ConflictError:
                    if attempt == config.TOKEN_ISSUE_ATTEMPTS:
                        raise
                    logger.warning("Invite token collision for session %s, retrying", session_id)
                    continue
                logger.info("Issued invite for session %s", session_id)
                return token

    def transition_status(self, session_id: str, target: SessionStatus | str) -> Session:
        """Move a session along the status graph.

        Entering COMPLETED stamps `completed_at`. Entering any terminal
        status closes an open recording at the same instant.
        """
        try:
            target = SessionStatus(target)
        except ValueError:
            raise InvalidInputError(f"Unknown session status: {target}") from None
        with self.locks.hold(session_id):
            with self.store.transaction():
                session = self._require(session_id)
                if not can_transition(session.status, target):
                    logger.warning(
                        "Rejected transition %s -> %s for session %s",
                        session.status.value,
                        target.value,
                        session_id,
                    )
                    raise InvalidTransitionError(session.status, target)

                now = self.clock()
                completed_at = now if target == SessionStatus.COMPLETED else None
                if not self.store.compare_and_set_status(
                    session_id, session.status, target, completed_at
                ):
                    raise ConflictError(f"Session {session_id} changed status concurrently")
                if is_terminal(target):
                    self.ledger.stop(session_id, at=now)
                session = self.store.get_session(session_id)

        logger.info("Session %s is now %s", session_id, target.value)
        return session

    def accept(self, session_id: str) -> Session:
        return self.transition_status(session_id, SessionStatus.ACTIVE)

    def reject(self, session_id: str) -> Session:
        return self.transition_status(session_id, SessionStatus.REJECTED)

    def complete(self, session_id: str) -> Session:
        return self.transition_status(session_id, SessionStatus.COMPLETED)

    def toggle_recording(self, session_id: str, want: bool) -> Session:
        """Start or stop recording. Not allowed once the session is terminal."""
        with self.locks.hold(session_id):
            with self.store.transaction():
                session = self._require(session_id)
                if is_terminal(session.status):
                    raise InvalidStateError(
                        f"Session {session_id} is {status_label(session.status)}; "
                        "recording cannot be changed"
                    )
                if want:
                    self.ledger.start(session_id)
                else:
                    self.ledger.stop(session_id)
                return self.store.get_session(session_id)

    def set_customer_online(
        self, session_id: str, online: bool, at: datetime | None = None
    ) -> Session:
        return self.presence.set_online(session_id, online, at=at)

    def update_notes(self, session_id: str, text: str | None) -> Session:
        with self.locks.hold(session_id):
            with self.store.transaction():
                if not self.store.update_session(session_id, notes=text):
                    raise NotFoundError("Session", session_id)
                return self.store.get_session(session_id)

    def delete_session(self, session_id: str) -> None:
        """Delete a session in any status, together with its recordings."""
        with self.locks.hold(session_id):
            if not self.store.delete_session(session_id):
                raise NotFoundError("Session", session_id)
        logger.info("Deleted session %s", session_id)

    def call_ended(self, session_id: str) -> Session:
        """Note that the video call for a session ended. Changes no state."""
        session = self._require(session_id)
        logger.info("Call ended for session %s (status %s)", session_id, session.status.value)
        return session
