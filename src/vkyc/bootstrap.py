"""Startup steps that seed required records."""

import logging

from vkyc import config
from vkyc.sessions.models import Agent
from vkyc.sessions.store import SessionStore

logger = logging.getLogger(__name__)


def ensure_default_agent(store: SessionStore) -> Agent:
    """Return the first agent on record, creating the default one if none exists."""
    with store.transaction():
        agent = store.find_agent(config.AGENT_ROLE)
        if agent is not None:
            return agent
        agent = store.insert_agent(
            Agent(
                name=config.DEFAULT_AGENT_NAME,
                email=config.DEFAULT_AGENT_EMAIL,
                role=config.AGENT_ROLE,
            )
        )
    logger.info("Created default agent %s", agent.id)
    return agent
