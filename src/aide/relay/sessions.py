import asyncio
from typing import Optional
from sqlalchemy.engine import Engine
from sqlmodel import Session
from aide.models.base import utc_now
from aide.models.session import AgentSession


class SessionStore:
    """Maps an owner to the agent thread their conversation continues."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, owner: str) -> Optional[str]:
        with Session(self.engine) as session:
            row = session.get(AgentSession, owner)
            return row.session_id if row else None

    def set(self, owner: str, session_id: str):
        with Session(self.engine) as session:
            row = session.get(AgentSession, owner)
            if row is None:
                row = AgentSession(owner=owner, session_id=session_id)
            else:
                row.session_id = session_id
                row.updated_at = utc_now()
            session.add(row)
            session.commit()

    def clear(self, owner: str) -> bool:
        with Session(self.engine) as session:
            row = session.get(AgentSession, owner)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    async def aget(self, owner: str) -> Optional[str]:
        return await asyncio.to_thread(self.get, owner)

    async def aset(self, owner: str, session_id: str):
        await asyncio.to_thread(self.set, owner, session_id)

    async def aclear(self, owner: str) -> bool:
        return await asyncio.to_thread(self.clear, owner)
