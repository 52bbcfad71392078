"""Read-side lookups over sessions."""

import hmac

from vkyc.sessions.errors import NotFoundError
from vkyc.sessions.models import DashboardCounts, Recording, Session, SessionStatus
from vkyc.sessions.status import is_terminal
from vkyc.sessions.store import SessionStore
from vkyc.sessions.tokens import token_digest


class SessionDirectory:
    """Lookup, listing and dashboard aggregation. Never mutates."""

    def __init__(self, store: SessionStore):
        self.store = store

    def get(self, session_id: str, with_recordings: bool = False) -> Session:
        with self.store.transaction(write=False):
            session = self.store.get_session(session_id)
            if session is None:
                raise NotFoundError("Session", session_id)
            if with_recordings:
                session.recordings = self.store.list_recordings(session_id)
        return session

    def get_by_token(self, token: str) -> Session:
        """Resolve a customer invite token.

        The store is searched by the token's digest, and the stored token is
        then compared in constant time.
        """
        # issued tokens are hex; anything else cannot match
        if not token or not token.isascii():
            raise NotFoundError("Invite", "token")
        session = self.store.find_session_by_digest(token_digest(token))
        if session is None or not hmac.compare_digest(
            (session.invite_token or "").encode("utf-8"), token.encode("utf-8")
        ):
            raise NotFoundError("Invite", "token")
        return session

    def list_sessions(self, status: SessionStatus | None = None) -> list[Session]:
        return self.store.list_sessions(status=status)

    def recordings_for(self, session_id: str) -> list[Recording]:
        return self.get(session_id, with_recordings=True).recordings

    def dashboard_counts(self) -> DashboardCounts:
        with self.store.transaction(write=False):
            sessions = self.store.list_sessions()
            recorded = self.store.recorded_session_ids()

        counts = DashboardCounts()
        for session in sessions:
            if session.status == SessionStatus.PENDING:
                counts.pending += 1
            elif session.status == SessionStatus.ACTIVE:
                counts.active += 1
            elif session.status == SessionStatus.COMPLETED:
                counts.completed += 1
            if session.is_customer_online and not is_terminal(session.status):
                counts.waiting_customers += 1
            if session.id in recorded:
                counts.recorded_sessions += 1
        return counts
