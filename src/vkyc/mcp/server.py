"""MCP server exposing verification session actions as tools."""

from mcp.server.fastmcp import FastMCP

from vkyc.bootstrap import ensure_default_agent
from vkyc.sessions.errors import VKYCError
from vkyc.sessions.lifecycle import SessionManager
from vkyc.sessions.locking import SessionLocks
from vkyc.sessions.models import Session, SessionStatus
from vkyc.sessions.store import SessionStore
from vkyc.sessions.tokens import invite_path

mcp = FastMCP("vkyc")
store = SessionStore()
locks = SessionLocks()


def _manager() -> SessionManager:
    return SessionManager(store, locks=locks)


def _session_dict(session: Session) -> dict:
    # invite tokens are only handed out by generate_invite
    data = session.model_dump(mode="json", exclude={"invite_token"})
    data["has_invite"] = session.invite_token is not None
    return data


@mcp.tool()
def create_session(
    customer_name: str,
    application_id: str,
    agent_id: str | None = None,
) -> dict | str:
    """Create a new pending verification session.

    Args:
        customer_name: Full name of the customer being verified
        application_id: Identifier of the application under review
        agent_id: Optional - owning agent; the default agent is used if omitted
    """
    try:
        manager = _manager()
        agent_id = agent_id or ensure_default_agent(store).id
        session = manager.create_session(customer_name, application_id, agent_id)
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def generate_invite(session_id: str) -> dict | str:
    """Issue a new customer invite link for a session.

    Any earlier link for the session stops working.

    Args:
        session_id: The session to invite the customer to
    """
    try:
        token = _manager().generate_invite(session_id)
    except VKYCError as e:
        return f"Error: {e}"
    return {"session_id": session_id, "token": token, "invite_url": invite_path(token)}


@mcp.tool()
def join_session(token: str) -> dict | str:
    """Resolve a customer invite token to its session.

    Args:
        token: Token from the customer's invite link
    """
    try:
        session = _manager().directory.get_by_token(token)
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def set_customer_presence(session_id: str, online: bool) -> dict | str:
    """Report that the customer connected to or left a session.

    Args:
        session_id: The session the customer belongs to
        online: True when the customer connected, False when they left
    """
    try:
        session = _manager().set_customer_online(session_id, online)
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def update_status(session_id: str, status: str) -> dict | str:
    """Move a session to PENDING, ACTIVE, COMPLETED or REJECTED.

    Allowed moves: PENDING to ACTIVE, REJECTED or COMPLETED; ACTIVE to
    COMPLETED. COMPLETED and REJECTED are final.

    Args:
        session_id: The session to update
        status: Target status name
    """
    try:
        session = _manager().transition_status(session_id, status.upper())
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def toggle_recording(session_id: str, recording: bool) -> dict | str:
    """Start or stop recording a session.

    Args:
        session_id: The session to record
        recording: True to start, False to stop
    """
    try:
        session = _manager().toggle_recording(session_id, recording)
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def update_notes(session_id: str, notes: str) -> dict | str:
    """Replace the agent's notes on a session."""
    try:
        session = _manager().update_notes(session_id, notes)
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def delete_session(session_id: str) -> dict | str:
    """Delete a session and all of its recordings."""
    try:
        _manager().delete_session(session_id)
    except VKYCError as e:
        return f"Error: {e}"
    return {"id": session_id, "status": "deleted"}


@mcp.tool()
def call_ended(session_id: str) -> dict | str:
    """Signal that the video call for a session ended. Does not change status."""
    try:
        session = _manager().call_ended(session_id)
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def get_session(session_id: str) -> dict | str:
    """Get full details of a session, including its recordings.

    Args:
        session_id: The session ID to retrieve
    """
    try:
        session = _manager().directory.get(session_id, with_recordings=True)
    except VKYCError as e:
        return f"Error: {e}"
    return _session_dict(session)


@mcp.tool()
def list_sessions(status: str | None = None) -> list[dict] | str:
    """List sessions, newest first.

    Args:
        status: Optional - only sessions in this status
    """
    try:
        wanted = SessionStatus(status.upper()) if status else None
    except ValueError:
        return f"Error: Unknown session status: {status}"
    try:
        sessions = _manager().directory.list_sessions(status=wanted)
        agents = store.agent_names()
    except VKYCError as e:
        return f"Error: {e}"
    return [{**_session_dict(s), "agent_name": agents.get(s.agent_id)} for s in sessions]


@mcp.tool()
def dashboard() -> dict | str:
    """Session counts for the agent dashboard."""
    try:
        counts = _manager().directory.dashboard_counts()
    except VKYCError as e:
        return f"Error: {e}"
    return counts.model_dump()
