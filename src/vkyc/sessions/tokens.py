"""Invite token issuing."""

import hashlib
import secrets

from vkyc import config


def issue_token() -> str:
    """Return a fresh random hex token for a customer invite link."""
    return secrets.token_hex(config.TOKEN_BYTES)


def token_digest(token: str) -> str:
    """SHA-256 of a token; the store indexes invites by this value."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def invite_path(token: str) -> str:
    return f"{config.INVITE_PATH_PREFIX}{token}"
