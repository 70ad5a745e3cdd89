from datetime import datetime
from sqlmodel import Field, SQLModel
from aide.models.base import utc_now


class AgentSession(SQLModel, table=True):
    __tablename__ = "agent_sessions"

    owner: str = Field(primary_key=True)
    session_id: str
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)
