"""Entry points the relay uses around each agent call."""
import asyncio
from typing import List, Optional
from aide.config import settings
from aide.logging import logger
from aide.memory.classifier import classify, compose_content, should_store
from aide.memory.retriever import Retriever
from aide.memory.store import MemoryStore, SweepResult
from aide.memory.sweeper import DecaySweeper
from aide.models.memory import Memory


class MemoryService:
    def __init__(
        self,
        store: MemoryStore,
        retriever: Optional[Retriever] = None,
        sweeper: Optional[DecaySweeper] = None,
    ):
        self.store = store
        self.retriever = retriever or Retriever(store)
        self.sweeper = sweeper or DecaySweeper(store)

    async def build_context(self, owner: str, message: str) -> str:
        return await self.retriever.build_context(owner, message)

    async def record_turn(self, owner: str, user_text: str, assistant_text: str) -> Optional[Memory]:
        """Remember a completed turn if it is worth keeping. Returns the new memory."""
        if not should_store(user_text):
            return None
        sector = classify(user_text)
        content = compose_content(user_text, assistant_text, settings.MEMORY_TRUNCATE_CHARS)
        memory = await asyncio.to_thread(self.store.insert, owner, content, sector)
        logger.info(f"Remembered turn as {sector.value} memory #{memory.id}")
        return memory

    async def list_memories(self, owner: str, limit: int = 10) -> List[Memory]:
        return await asyncio.to_thread(self.store.for_owner, owner, limit)

    async def forget(self, owner: str) -> int:
        return await asyncio.to_thread(self.store.clear, owner)

    async def sweep(self) -> Optional[SweepResult]:
        """One sweep through the shared sweeper. None if one is already running."""
        return await self.sweeper.run_once()
