"""SQLite storage for sessions, recordings and agents."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterator

from vkyc import config
from vkyc.sessions.errors import ConflictError, UnavailableError
from vkyc.sessions.models import Agent, Recording, Session, SessionStatus
from vkyc.sessions.tokens import token_digest

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS agents (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    role TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS rooms (
    id TEXT PRIMARY KEY,
    customer_name TEXT NOT NULL,
    application_id TEXT NOT NULL,
    agent_id TEXT NOT NULL REFERENCES agents(id),
    status TEXT NOT NULL DEFAULT 'PENDING',
    invite_token TEXT,
    invite_digest TEXT UNIQUE,
    is_customer_online INTEGER NOT NULL DEFAULT 0,
    last_customer_activity TEXT,
    is_recording INTEGER NOT NULL DEFAULT 0,
    notes TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_rooms_created ON rooms(created_at);
CREATE INDEX IF NOT EXISTS idx_rooms_status ON rooms(status);

CREATE TABLE IF NOT EXISTS recordings (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
    file_name TEXT NOT NULL,
    started_at TEXT NOT NULL,
    ended_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_recordings_room ON recordings(room_id, started_at);

-- at most one open segment per room
CREATE UNIQUE INDEX IF NOT EXISTS idx_recordings_open
    ON recordings(room_id) WHERE ended_at IS NULL;
"""

# Columns of `rooms` that update_session may write
SESSION_COLUMNS = frozenset(
    {
        "status",
        "invite_token",
        "is_customer_online",
        "last_customer_activity",
        "is_recording",
        "notes",
        "completed_at",
    }
)


def _to_column(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SessionStore:
    """SQLite-backed storage collaborator.

    Each thread gets its own connection. Writers open ``BEGIN IMMEDIATE``
    transactions; nested ``transaction()`` blocks join the outer one.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or config.DB_PATH
        self._local = threading.local()
        self._conns: list[sqlite3.Connection] = []
        self._conns_lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            return conn
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=config.STORE_BUSY_TIMEOUT,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise UnavailableError(f"Cannot open session store at {self.db_path}: {e}") from e
        self._local.conn = conn
        self._local.depth = 0
        with self._conns_lock:
            self._conns.append(conn)
        return conn

    def close(self) -> None:
        with self._conns_lock:
            conns, self._conns = self._conns, []
        for conn in conns:
            conn.close()
        self._local = threading.local()

    @contextmanager
    def transaction(self, write: bool = True) -> Iterator[sqlite3.Connection]:
        """Run a block atomically; storage failures surface as core errors."""
        conn = self._get_conn()
        if self._local.depth:
            self._local.depth += 1
            try:
                yield conn
            finally:
                self._local.depth -= 1
            return

        try:
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
        except sqlite3.Error as e:
            raise UnavailableError(f"Session store unavailable: {e}") from e

        self._local.depth = 1
        try:
            yield conn
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ConflictError(f"Conflicting write: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Session store failure: %s", e)
            raise UnavailableError(f"Session store unavailable: {e}") from e
        except BaseException:
            conn.rollback()
            raise
        else:
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                conn.rollback()
                raise UnavailableError(f"Session store unavailable: {e}") from e
        finally:
            self._local.depth = 0

    # ── Row mapping ──────────────────────────────────────────────

    def _row_to_agent(self, row: sqlite3.Row) -> Agent:
        return Agent(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            role=row["role"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_session(self, row: sqlite3.Row) -> Session:
        return Session(
            id=row["id"],
            customer_name=row["customer_name"],
            application_id=row["application_id"],
            agent_id=row["agent_id"],
            status=SessionStatus(row["status"]),
            invite_token=row["invite_token"],
            is_customer_online=bool(row["is_customer_online"]),
            last_customer_activity=_parse_ts(row["last_customer_activity"]),
            is_recording=bool(row["is_recording"]),
            notes=row["notes"],
            completed_at=_parse_ts(row["completed_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _row_to_recording(self, row: sqlite3.Row) -> Recording:
        return Recording(
            id=row["id"],
            room_id=row["room_id"],
            file_name=row["file_name"],
            started_at=datetime.fromisoformat(row["started_at"]),
            ended_at=_parse_ts(row["ended_at"]),
        )

    # ── Agents ───────────────────────────────────────────────────

    def insert_agent(self, agent: Agent) -> Agent:
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO agents (id, name, email, role, created_at) VALUES (?, ?, ?, ?, ?)",
                (agent.id, agent.name, agent.email, agent.role, agent.created_at.isoformat()),
            )
        return agent

    def get_agent(self, agent_id: str) -> Agent | None:
        with self.transaction(write=False) as conn:
            row = conn.execute("SELECT * FROM agents WHERE id = ?", (agent_id,)).fetchone()
        return self._row_to_agent(row) if row else None

    def find_agent(self, role: str) -> Agent | None:
        """First agent with the given role, oldest first."""
        with self.transaction(write=False) as conn:
            row = conn.execute(
                "SELECT * FROM agents WHERE role = ? ORDER BY created_at, rowid LIMIT 1",
                (role,),
            ).fetchone()
        return self._row_to_agent(row) if row else None

    def agent_names(self) -> dict[str, str]:
        """Map of agent id to display name."""
        with self.transaction(write=False) as conn:
            rows = conn.execute("SELECT id, name FROM agents").fetchall()
        return {r["id"]: r["name"] for r in rows}

    # ── Sessions ─────────────────────────────────────────────────

    def insert_session(self, session: Session) -> Session:
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO rooms
                (id, customer_name, application_id, agent_id, status, invite_token, invite_digest,
                 is_customer_online, last_customer_activity, is_recording, notes, completed_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    session.id,
                    session.customer_name,
                    session.application_id,
                    session.agent_id,
                    session.status.value,
                    session.invite_token,
                    token_digest(session.invite_token) if session.invite_token else None,
                    int(session.is_customer_online),
                    _to_column(session.last_customer_activity),
                    int(session.is_recording),
                    session.notes,
                    _to_column(session.completed_at),
                    session.created_at.isoformat(),
                ),
            )
        return session

    def get_session(self, session_id: str) -> Session | None:
        with self.transaction(write=False) as conn:
            row = conn.execute("SELECT * FROM rooms WHERE id = ?", (session_id,)).fetchone()
        return self._row_to_session(row) if row else None

    def find_session_by_digest(self, digest: str) -> Session | None:
        with self.transaction(write=False) as conn:
            row = conn.execute(
                "SELECT * FROM rooms WHERE invite_digest = ?", (digest,)
            ).fetchone()
        return self._row_to_session(row) if row else None

    def list_sessions(self, status: SessionStatus | None = None) -> list[Session]:
        """All sessions, newest first, optionally filtered by status."""
        with self.transaction(write=False) as conn:
            if status:
                rows = conn.execute(
                    "SELECT * FROM rooms WHERE status = ? ORDER BY created_at DESC, rowid DESC",
                    (status.value,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM rooms ORDER BY created_at DESC, rowid DESC"
                ).fetchall()
        return [self._row_to_session(r) for r in rows]

    def update_session(self, session_id: str, **fields) -> bool:
        """Overwrite the given columns of one session. Returns False if absent."""
        unknown = set(fields) - SESSION_COLUMNS
        if unknown:
            raise ValueError(f"Unknown session columns: {sorted(unknown)}")
        if "invite_token" in fields:
            token = fields["invite_token"]
            fields["invite_digest"] = token_digest(token) if token else None

        assignments = ", ".join(f"{name} = ?" for name in fields)
        params = [_to_column(v) for v in fields.values()] + [session_id]
        with self.transaction() as conn:
            cursor = conn.execute(f"UPDATE rooms SET {assignments} WHERE id = ?", params)
        return cursor.rowcount > 0

    def compare_and_set_status(
        self,
        session_id: str,
        expected: SessionStatus,
        target: SessionStatus,
        completed_at: datetime | None = None,
    ) -> bool:
        """Move status from `expected` to `target`; False if status changed underneath."""
        with self.transaction() as conn:
            cursor = conn.execute(
                """UPDATE rooms SET status = ?, completed_at = COALESCE(?, completed_at)
                WHERE id = ? AND status = ?""",
                (target.value, _to_column(completed_at), session_id, expected.value),
            )
        return cursor.rowcount > 0

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and its recordings."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM recordings WHERE room_id = ?", (session_id,))
            cursor = conn.execute("DELETE FROM rooms WHERE id = ?", (session_id,))
        return cursor.rowcount > 0

    # ── Recordings ───────────────────────────────────────────────

    def insert_recording(self, recording: Recording) -> Recording:
        with self.transaction() as conn:
            conn.execute(
                """INSERT INTO recordings (id, room_id, file_name, started_at, ended_at)
                VALUES (?, ?, ?, ?, ?)""",
                (
                    recording.id,
                    recording.room_id,
                    recording.file_name,
                    recording.started_at.isoformat(),
                    _to_column(recording.ended_at),
                ),
            )
        return recording

    def find_open_recording(self, session_id: str) -> Recording | None:
        with self.transaction(write=False) as conn:
            row = conn.execute(
                "SELECT * FROM recordings WHERE room_id = ? AND ended_at IS NULL",
                (session_id,),
            ).fetchone()
        return self._row_to_recording(row) if row else None

    def close_recording(self, recording_id: str, ended_at: datetime) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute(
                "UPDATE recordings SET ended_at = ? WHERE id = ? AND ended_at IS NULL",
                (ended_at.isoformat(), recording_id),
            )
        return cursor.rowcount > 0

    def list_recordings(self, session_id: str) -> list[Recording]:
        """Recordings of a session, newest first."""
        with self.transaction(write=False) as conn:
            rows = conn.execute(
                "SELECT * FROM recordings WHERE room_id = ? ORDER BY started_at DESC, rowid DESC",
                (session_id,),
            ).fetchall()
        return [self._row_to_recording(r) for r in rows]

    def recorded_session_ids(self) -> set[str]:
        """Ids of sessions with at least one recording."""
        with self.transaction(write=False) as conn:
            rows = conn.execute("SELECT DISTINCT room_id FROM recordings").fetchall()
        return {r["room_id"] for r in rows}
