"""Builds the memory context block prepended to an outgoing agent request."""
import asyncio
import re
from typing import Iterable, List
from aide.config import settings
from aide.logging import logger
from aide.memory.errors import SearchDegradedError
from aide.memory.store import MemoryStore
from aide.models.memory import Memory

CONTEXT_HEADER = "[Memory context]"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9\s]")


def extract_keywords(
    message: str,
    max_keywords: int = settings.MEMORY_MAX_KEYWORDS,
    min_length: int = settings.MEMORY_MIN_KEYWORD_LENGTH,
) -> List[str]:
    """First `max_keywords` alphanumeric tokens of at least `min_length` chars."""
    tokens = _NON_ALNUM.sub(" ", message).split()
    return [t for t in tokens if len(t) >= min_length][:max_keywords]


def merge_unique(*groups: Iterable[Memory]) -> List[Memory]:
    """Concatenate groups, keeping the first occurrence of each memory id."""
    seen = set()
    merged = []
    for group in groups:
        for memory in group:
            if memory.id in seen:
                continue
            seen.add(memory.id)
            merged.append(memory)
    return merged


def format_context(memories: Iterable[Memory]) -> str:
    lines = [f"- {m.content} ({m.sector.value})" for m in memories]
    if not lines:
        return ""
    return "\n".join([CONTEXT_HEADER, *lines])


class Retriever:
    def __init__(
        self,
        store: MemoryStore,
        search_limit: int = settings.MEMORY_SEARCH_LIMIT,
        recent_limit: int = settings.MEMORY_RECENT_LIMIT,
        max_keywords: int = settings.MEMORY_MAX_KEYWORDS,
        min_keyword_length: int = settings.MEMORY_MIN_KEYWORD_LENGTH,
    ):
        self.store = store
        self.search_limit = search_limit
        self.recent_limit = recent_limit
        self.max_keywords = max_keywords
        self.min_keyword_length = min_keyword_length

    async def retrieve(self, owner: str, message: str) -> List[Memory]:
        """Keyword hits then recent memories, deduplicated and reinforced."""
        keywords = extract_keywords(message, self.max_keywords, self.min_keyword_length)

        hits: List[Memory] = []
        if keywords:
            try:
                hits = await asyncio.to_thread(
                    self.store.search_by_keywords, owner, keywords, self.search_limit
                )
            except SearchDegradedError as e:
                logger.warning(f"Keyword recall unavailable, using recent memories only: {e}")

        recent = await asyncio.to_thread(self.store.recent, owner, self.recent_limit)

        memories = merge_unique(hits, recent)
        if memories:
            await asyncio.to_thread(self.store.reinforce_many, [m.id for m in memories])
        return memories

    async def build_context(self, owner: str, message: str) -> str:
        """Context block for `message`, or an empty string when nothing is remembered."""
        return format_context(await self.retrieve(owner, message))
