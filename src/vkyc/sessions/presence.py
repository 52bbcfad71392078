"""Customer presence tracking."""

import logging
from datetime import datetime
from typing import Callable

from vkyc.sessions.errors import NotFoundError
from vkyc.sessions.locking import SessionLocks
from vkyc.sessions.models import Session, utcnow
from vkyc.sessions.store import SessionStore

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Records whether the customer endpoint is connected to a session.

    There is no heartbeat: a client that drops without reporting "offline"
    stays online until the next report.
    """

    def __init__(
        self,
        store: SessionStore,
        locks: SessionLocks | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.locks = locks if locks is not None else SessionLocks()
        self.clock = clock

    def set_online(self, session_id: str, online: bool, at: datetime | None = None) -> Session:
        """Overwrite the presence flag and activity time of a session.

        Calls apply in the order they take the session lock. Without an
        explicit `at`, the time is read under the lock, so activity times
        follow that order.
        """
        with self.locks.hold(session_id):
            at = at or self.clock()
            with self.store.transaction():
                found = self.store.update_session(
                    session_id,
                    is_customer_online=online,
                    last_customer_activity=at,
                )
                if not found:
                    raise NotFoundError("Session", session_id)
                session = self.store.get_session(session_id)
        logger.debug("Customer %s for session %s", "online" if online else "offline", session_id)
        return session
