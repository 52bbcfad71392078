"""Session lifecycle core."""

from vkyc.sessions.directory import SessionDirectory
from vkyc.sessions.errors import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    UnavailableError,
    VKYCError,
)
from vkyc.sessions.lifecycle import SessionManager
from vkyc.sessions.locking import SessionLocks
from vkyc.sessions.models import Agent, DashboardCounts, Recording, Session, SessionStatus
from vkyc.sessions.presence import PresenceTracker
from vkyc.sessions.recordings import RecordingLedger
from vkyc.sessions.store import SessionStore

__all__ = [
    "Agent",
    "ConflictError",
    "DashboardCounts",
    "InvalidInputError",
    "InvalidStateError",
    "InvalidTransitionError",
    "NotFoundError",
    "PresenceTracker",
    "Recording",
    "RecordingLedger",
    "Session",
    "SessionDirectory",
    "SessionLocks",
    "SessionManager",
    "SessionStatus",
    "SessionStore",
    "UnavailableError",
    "VKYCError",
]
