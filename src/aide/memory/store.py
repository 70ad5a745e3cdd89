"""
Durable memory store.

Every write is a single transaction that touches both `memories` and its
FTS5 index, and salience changes are single UPDATE statements so concurrent
reinforcement of one row cannot lose an increment.
"""
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence
from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from aide.logging import logger
from aide.memory import salience
from aide.memory.errors import SearchDegradedError, StorageError, ValidationError
from aide.models.base import utc_now
from aide.models.memory import Memory, Sector
from aide.search.fts import (
    build_match_query,
    index_memory,
    search_memory_ids,
    unindex_below,
    unindex_owner,
)


@dataclass
class SweepResult:
    decayed: int
    pruned: int


def _coerce_sector(sector) -> Sector:
    if isinstance(sector, Sector):
        return sector
    try:
        return Sector(sector)
    except ValueError:
        raise ValidationError(f"Unknown sector {sector!r}") from None


class MemoryStore:
    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utc_now):
        self.engine = engine
        self.clock = clock
        self._sweep_lock = threading.Lock()

    def insert(
        self,
        owner: str,
        content: str,
        sector: Sector | str,
        topic_key: Optional[str] = None,
    ) -> Memory:
        """Store a new memory at initial salience, indexed for search."""
        if not owner:
            raise ValidationError("Memory owner must not be empty")
        if not content or not content.strip():
            raise ValidationError("Memory content must not be empty")
        sector = _coerce_sector(sector)

        now = self.clock()
        memory = Memory(
            owner=owner,
            topic_key=topic_key,
            content=content,
            sector=sector,
            salience=salience.INITIAL_SALIENCE,
            created_at=now,
            accessed_at=now,
        )
        try:
            with Session(self.engine) as session:
                session.add(memory)
                session.flush()
                index_memory(session, memory.id, memory.content)
                session.commit()
                session.refresh(memory)
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert memory for owner {owner}: {e}")
            raise StorageError(f"insert failed: {e}") from e
        logger.debug(f"Stored {sector.value} memory #{memory.id} for {owner}")
        return memory

    def get(self, memory_id: int) -> Optional[Memory]:
        try:
            with Session(self.engine) as session:
                return session.get(Memory, memory_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load memory #{memory_id}: {e}")
            raise StorageError(f"get failed: {e}") from e

    def search_by_keywords(self, owner: str, keywords: Sequence[str], limit: int) -> List[Memory]:
        """OR-prefix search over the owner's memories, best match first."""
        query = build_match_query(keywords)
        if not query or limit <= 0:
            return []
        try:
            with Session(self.engine) as session:
                ids = search_memory_ids(session, owner, query, salience.PRUNE_FLOOR, limit)
                if not ids:
                    return []
                rows = session.exec(select(Memory).where(Memory.id.in_(ids))).all()
        except SQLAlchemyError as e:
            logger.error(f"Keyword search failed for owner {owner} ({query!r}): {e}")
            raise SearchDegradedError(f"search failed: {e}") from e
        by_id = {m.id: m for m in rows}
        return [by_id[i] for i in ids if i in by_id]

    def recent(self, owner: str, limit: int) -> List[Memory]:
        """Most recently accessed memories, newest first."""
        statement = (
            select(Memory)
            .where(Memory.owner == owner, Memory.salience >= salience.PRUNE_FLOOR)
            .order_by(Memory.accessed_at.desc(), Memory.id.desc())
            .limit(limit)
        )
        return self._fetch(statement, f"recent memories for {owner}")

    def for_owner(self, owner: str, limit: int = 20) -> List[Memory]:
        """Memories for listing: most salient first, then most recent."""
        statement = (
            select(Memory)
            .where(Memory.owner == owner, Memory.salience >= salience.PRUNE_FLOOR)
            .order_by(Memory.salience.desc(), Memory.accessed_at.desc(), Memory.id.desc())
            .limit(limit)
        )
        return self._fetch(statement, f"memories for {owner}")

    def count(self, owner: Optional[str] = None) -> int:
        statement = select(func.count(Memory.id)).where(Memory.salience >= salience.PRUNE_FLOOR)
        if owner is not None:
            statement = statement.where(Memory.owner == owner)
        try:
            with Session(self.engine) as session:
                return session.exec(statement).one()
        except SQLAlchemyError as e:
            logger.error(f"Failed to count memories: {e}")
            raise StorageError(f"count failed: {e}") from e

    def reinforce(self, memory_id: int) -> None:
        """Bump salience by one step (capped) and mark the memory accessed now."""
        self.reinforce_many([memory_id])

    def reinforce_many(self, memory_ids: Iterable[int]) -> None:
        ids = list(dict.fromkeys(memory_ids))
        if not ids:
            return
        statement = (
            update(Memory)
            .where(Memory.id.in_(ids))
            .values(
                accessed_at=self.clock(),
                salience=func.min(Memory.salience + salience.REINFORCE_DELTA, salience.MAX_SALIENCE),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            with Session(self.engine) as session:
                session.exec(statement)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to reinforce memories {ids}: {e}")
            raise StorageError(f"reinforce failed: {e}") from e

    def decay_and_prune(self) -> Optional[SweepResult]:
        """Age every memory idle past the grace window, then drop expired ones.

        Only one sweep per store runs at a time. A call made while another is
        in progress returns None and changes nothing.
        """
        if not self._sweep_lock.acquire(blocking=False):
            logger.info("Decay sweep already in progress, skipping")
            return None
        try:
            return self._sweep()
        finally:
            self._sweep_lock.release()

    def _sweep(self) -> SweepResult:
        cutoff = salience.decay_cutoff(self.clock())
        decay = (
            update(Memory)
            .where(Memory.accessed_at < cutoff)
            .values(salience=func.max(Memory.salience * salience.DECAY_FACTOR, salience.MIN_SALIENCE))
            .execution_options(synchronize_session=False)
        )
        prune = (
            delete(Memory)
            .where(Memory.salience < salience.PRUNE_FLOOR)
            .execution_options(synchronize_session=False)
        )
        try:
            with Session(self.engine) as session:
                decayed = session.exec(decay).rowcount
                unindex_below(session, salience.PRUNE_FLOOR)
                pruned = session.exec(prune).rowcount
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Decay sweep failed: {e}")
            raise StorageError(f"decay sweep failed: {e}") from e
        logger.info(f"Decay sweep: {decayed} decayed, {pruned} pruned")
        return SweepResult(decayed=decayed, pruned=pruned)

    def clear(self, owner: str) -> int:
        """Delete every memory of an owner. Returns the number removed."""
        try:
            with Session(self.engine) as session:
                unindex_owner(session, owner)
                removed = session.exec(
                    delete(Memory)
                    .where(Memory.owner == owner)
                    .execution_options(synchronize_session=False)
                ).rowcount
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to clear memories for {owner}: {e}")
            raise StorageError(f"clear failed: {e}") from e
        logger.info(f"Cleared {removed} memories for {owner}")
        return removed

    def _fetch(self, statement, what: str) -> List[Memory]:
        try:
            with Session(self.engine) as session:
                return list(session.exec(statement).all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to load {what}: {e}")
            raise StorageError(f"query failed: {e}") from e
