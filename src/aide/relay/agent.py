from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class AgentReply:
    text: str
    session_id: Optional[str] = None  # thread id to continue next turn


class Agent(Protocol):
    """The reasoning agent messages are relayed to."""

    async def run(self, prompt: str, session_id: Optional[str] = None) -> AgentReply:
        ...
