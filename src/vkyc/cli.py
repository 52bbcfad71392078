"""vKYC CLI - agent and customer actions on verification sessions."""

import logging
from contextlib import contextmanager
from typing import Annotated, Iterator, Optional, assert_never

import typer
from rich.console import Console
from rich.table import Table

from vkyc import __version__, config
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
from vkyc.sessions.models import Session, SessionStatus
from vkyc.sessions.status import is_terminal, status_label
from vkyc.sessions.store import SessionStore

app = typer.Typer(
    name="vkyc",
    help="Coordinate video KYC verification sessions.",
    no_args_is_help=True,
)
mcp_app = typer.Typer(help="MCP server management.")

app.add_typer(mcp_app, name="mcp")

console = Console()

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def version_callback(value: bool) -> None:
    if value:
        console.print(f"vkyc {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-V", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """vKYC - create sessions, send invites, track presence and recordings."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=config.LOG_FORMAT,
    )
    config.ensure_dirs()


def _status_style(status: SessionStatus) -> str:
    match status:
        case SessionStatus.PENDING:
            return "yellow"
        case SessionStatus.ACTIVE:
            return "green"
        case SessionStatus.COMPLETED:
            return "blue"
        case SessionStatus.REJECTED:
            return "red"
        case _:
            assert_never(status)


def _badge(status: SessionStatus) -> str:
    style = _status_style(status)
    return f"[{style}]{status_label(status)}[/{style}]"


def _error_message(err: VKYCError) -> str:
    match err:
        case NotFoundError():
            return f"[red]Not found:[/red] {err}"
        case InvalidInputError():
            return f"[red]Invalid input:[/red] {err}"
        case InvalidTransitionError():
            return f"[red]Invalid transition:[/red] {err}"
        case InvalidStateError():
            return f"[red]Not allowed:[/red] {err}"
        case ConflictError():
            return f"[red]Conflict:[/red] {err}"
        case UnavailableError():
            return f"[red]Storage unavailable:[/red] {err}"
        case _:
            return f"[red]Error:[/red] {err}"


@contextmanager
def _session_manager() -> Iterator[SessionManager]:
    store = SessionStore(db_path=config.DB_PATH)
    try:
        yield SessionManager(store)
    except VKYCError as e:
        console.print(_error_message(e))
        raise typer.Exit(1)
    finally:
        store.close()


def _print_session(session: Session) -> None:
    console.print(f"[bold]{session.customer_name}[/bold] ({session.application_id})")
    console.print(f"  ID:        {session.id}")
    console.print(f"  Status:    {_badge(session.status)}")
    online = "[green]online[/green]" if session.is_customer_online else "[dim]offline[/dim]"
    console.print(f"  Customer:  {online}")
    console.print(f"  Recording: {'yes' if session.is_recording else 'no'}")
    console.print(f"  Created:   {session.created_at.isoformat()}")
    if session.completed_at:
        console.print(f"  Completed: {session.completed_at.isoformat()}")
    if session.notes:
        console.print(f"  Notes:     {session.notes}")


# ── Agent commands ───────────────────────────────────────────────


@app.command("create")
def create(
    customer_name: Annotated[str, typer.Argument(help="Customer's full name")],
    application_id: Annotated[str, typer.Argument(help="Application being verified")],
    agent_id: Annotated[
        Optional[str], typer.Option("--agent", "-a", help="Owning agent (default agent if omitted)")
    ] = None,
) -> None:
    """Create a new pending verification session."""
    from vkyc.bootstrap import ensure_default_agent

    with _session_manager() as manager:
        if not agent_id:
            agent_id = ensure_default_agent(manager.store).id
        session = manager.create_session(customer_name, application_id, agent_id)
    console.print(f"[green]Created session:[/green] {session.id}")


@app.command("list")
def list_sessions(
    status: Annotated[
        Optional[SessionStatus],
        typer.Option("--status", "-s", case_sensitive=False, help="Only sessions in this status"),
    ] = None,
) -> None:
    """List sessions, newest first."""
    with _session_manager() as manager:
        sessions = manager.directory.list_sessions(status=status)
        recorded = manager.store.recorded_session_ids()
        agents = manager.store.agent_names()

    if not sessions:
        console.print("[dim]No sessions yet. Create one with:[/dim]")
        console.print("  vkyc create <customer-name> <application-id>")
        return

    table = Table(title="Verification Sessions")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Customer", style="green")
    table.add_column("App")
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Rec")
    table.add_column("Created")

    for s in sessions:
        status_cell = _badge(s.status)
        if s.is_customer_online and not is_terminal(s.status):
            status_cell += " [green]●[/green]"
        table.add_row(
            s.id,
            s.customer_name,
            s.application_id,
            agents.get(s.agent_id, "-"),
            status_cell,
            "yes" if s.id in recorded else "-",
            s.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command("show")
def show(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
) -> None:
    """Show one session with its recordings."""
    with _session_manager() as manager:
        session = manager.directory.get(session_id, with_recordings=True)

    _print_session(session)
    if not session.recordings:
        return

    table = Table(title="Recordings")
    table.add_column("File", style="cyan")
    table.add_column("Started")
    table.add_column("Ended")
    for r in session.recordings:
        ended = r.ended_at.strftime(TIME_FORMAT) if r.ended_at else "[red]recording[/red]"
        table.add_row(r.file_name, r.started_at.strftime(TIME_FORMAT), ended)
    console.print(table)


@app.command("invite")
def invite(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
) -> None:
    """Issue a new invite link; the previous link stops working."""
    from vkyc.sessions.tokens import invite_path

    with _session_manager() as manager:
        token = manager.generate_invite(session_id)
    console.print(f"[green]Invite link:[/green] {invite_path(token)}")


@app.command("status")
def set_status(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    status: Annotated[SessionStatus, typer.Argument(case_sensitive=False, help="Target status")],
) -> None:
    """Move a session to a new status."""
    with _session_manager() as manager:
        session = manager.transition_status(session_id, status)
    console.print(f"[green]Session {session.id}:[/green] {_badge(session.status)}")


@app.command("record")
def record(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    start: Annotated[bool, typer.Option("--start/--stop", help="Start or stop recording")] = True,
) -> None:
    """Start or stop recording a session."""
    with _session_manager() as manager:
        session = manager.toggle_recording(session_id, start)
    state = "[red]recording[/red]" if session.is_recording else "not recording"
    console.print(f"Session {session.id}: {state}")


@app.command("notes")
def notes(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    text: Annotated[str, typer.Argument(help="Notes text (replaces existing notes)")],
) -> None:
    """Replace a session's notes."""
    with _session_manager() as manager:
        manager.update_notes(session_id, text)
    console.print(f"[green]Notes saved for session:[/green] {session_id}")


@app.command("delete")
def delete(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a session and its recordings."""
    if not yes:
        typer.confirm(f"Delete session {session_id} and all its recordings?", abort=True)
    with _session_manager() as manager:
        manager.delete_session(session_id)
    console.print(f"[green]Deleted session:[/green] {session_id}")


@app.command("dashboard")
def dashboard() -> None:
    """Show session counts."""
    with _session_manager() as manager:
        counts = manager.directory.dashboard_counts()

    table = Table(title="Dashboard")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Pending", str(counts.pending))
    table.add_row("Active", str(counts.active))
    table.add_row("Completed", str(counts.completed))
    table.add_row("Waiting customers", str(counts.waiting_customers))
    table.add_row("Recorded sessions", str(counts.recorded_sessions))
    console.print(table)


# ── Customer commands ────────────────────────────────────────────


@app.command("join")
def join(
    token: Annotated[str, typer.Argument(help="Invite token from the customer link")],
) -> None:
    """Resolve an invite token to its session."""
    with _session_manager() as manager:
        session = manager.directory.get_by_token(token)

    if is_terminal(session.status):
        console.print(
            f"[yellow]This session has been {status_label(session.status).lower()}.[/yellow]"
        )
        raise typer.Exit(1)
    console.print(f"[green]Welcome, {session.customer_name}.[/green] Session {session.id}")


@app.command("presence")
def presence(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
    online: Annotated[bool, typer.Option("--online/--offline", help="Customer presence")] = True,
) -> None:
    """Report whether the customer is connected."""
    with _session_manager() as manager:
        session = manager.set_customer_online(session_id, online)
    state = "online" if session.is_customer_online else "offline"
    console.print(f"Customer for session {session.id} is {state}")


@app.command("call-ended")
def call_ended(
    session_id: Annotated[str, typer.Argument(help="Session ID")],
) -> None:
    """Signal that the video call for a session has ended."""
    with _session_manager() as manager:
        session = manager.call_ended(session_id)
    console.print(f"Call ended. Session {session.id} is {_badge(session.status)}")


# ── MCP commands ─────────────────────────────────────────────────


@mcp_app.command("serve")
def mcp_serve() -> None:
    """Start the MCP server (stdio transport)."""
    from vkyc.mcp.server import mcp

    mcp.run()
