from enum import Enum
from typing import Optional
from sqlalchemy import Column, Enum as SAEnum
from sqlmodel import Field
from aide.models.base import TimestampMixin


class Sector(str, Enum):
    SEMANTIC = "semantic"  # durable facts about the owner
    EPISODIC = "episodic"  # what happened in one exchange


class Memory(TimestampMixin, table=True):
    __tablename__ = "memories"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner: str = Field(index=True, description="Conversation the memory is scoped to")
    topic_key: Optional[str] = Field(default=None, description="Reserved for topic-scoped queries")
    content: str
    sector: Sector = Field(
        sa_column=Column(
            SAEnum(Sector, name="sector", values_callable=lambda e: [m.value for m in e]),
            nullable=False,
        )
    )
    salience: float = Field(default=1.0)
