from aide.models.memory import Memory, Sector
from aide.models.session import AgentSession

__all__ = [
    "Memory", "Sector",
    "AgentSession",
]
