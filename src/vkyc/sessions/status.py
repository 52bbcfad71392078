"""Status graph for verification sessions."""

from typing import assert_never

from vkyc.sessions.models import SessionStatus

TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset(
        {SessionStatus.ACTIVE, SessionStatus.REJECTED, SessionStatus.COMPLETED}
    ),
    SessionStatus.ACTIVE: frozenset({SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.REJECTED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in TRANSITIONS[current]


def is_terminal(status: SessionStatus) -> bool:
    match status:
        case SessionStatus.PENDING | SessionStatus.ACTIVE:
            return False
        case SessionStatus.COMPLETED | SessionStatus.REJECTED:
            return True
        case _:
            assert_never(status)


def status_label(status: SessionStatus) -> str:
    """Human-readable label for a status."""
    match status:
        case SessionStatus.PENDING:
            return "Pending"
        case SessionStatus.ACTIVE:
            return "Active"
        case SessionStatus.COMPLETED:
            return "Completed"
        case SessionStatus.REJECTED:
            return "Rejected"
        case _:
            assert_never(status)
