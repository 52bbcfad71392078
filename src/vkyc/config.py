"""Configuration and directory management for vKYC."""

import os
from pathlib import Path

VKYC_DIR = Path(os.environ.get("VKYC_HOME", Path.home() / ".vkyc"))
DB_PATH = VKYC_DIR / "sessions.db"

# Seconds SQLite waits on a locked database before the store gives up
STORE_BUSY_TIMEOUT = 5.0

# Invite tokens
TOKEN_BYTES = 16
TOKEN_ISSUE_ATTEMPTS = 3
INVITE_PATH_PREFIX = "/invite/"

# Agent used when a session is created without an explicit owner
AGENT_ROLE = "agent"
DEFAULT_AGENT_NAME = "Default Agent"
DEFAULT_AGENT_EMAIL = "agent@example.com"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def ensure_dirs() -> None:
    """Ensure the vKYC data directory exists."""
    VKYC_DIR.mkdir(parents=True, exist_ok=True)
