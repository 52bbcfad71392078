"""Session data models for vKYC verification rooms."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex[:12]


class SessionStatus(str, Enum):
    """Approval workflow status of a verification session."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class Agent(BaseModel):
    """The agent who conducts verification sessions."""

    id: str = Field(default_factory=new_id)
    name: str
    email: str
    role: str = "agent"
    created_at: datetime = Field(default_factory=utcnow)


class Recording(BaseModel):
    """Metadata for one captured segment of a session's call."""

    id: str = Field(default_factory=new_id)
    room_id: str = Field(description="Session this segment belongs to")
    file_name: str = Field(description="Name the media file is stored under")
    started_at: datetime = Field(default_factory=utcnow)
    ended_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


class Session(BaseModel):
    """A verification room between one agent and one customer."""

    id: str = Field(default_factory=new_id)
    customer_name: str
    application_id: str
    agent_id: str
    status: SessionStatus = SessionStatus.PENDING
    invite_token: str | None = Field(default=None, description="Secret customer credential")
    is_customer_online: bool = False
    last_customer_activity: datetime | None = None
    is_recording: bool = False
    notes: str | None = None
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    recordings: list[Recording] = Field(default_factory=list)


class DashboardCounts(BaseModel):
    """Aggregate counts shown on the agent dashboard."""

    pending: int = 0
    active: int = 0
    completed: int = 0
    waiting_customers: int = 0
    recorded_sessions: int = 0
