"""FTS5 index over memory content.

The index is an external-content table: it stores only the token index and
reads `content` back from `memories`. It is kept in sync explicitly by the
store, inside the same transaction as every write that adds or removes
content, so there are no triggers to maintain.
"""
from typing import Iterable, List
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlmodel import Session
from aide.logging import logger


def setup_fts(engine: Engine):
    """Create the FTS5 virtual table if it doesn't exist."""
    with Session(engine) as session:
        session.exec(text("""
            CREATE VIRTUAL TABLE IF NOT EXISTS memories_fts USING fts5(
                content,
                content='memories',
                content_rowid='id'
            );
        """))
        session.commit()


def reindex_all(engine: Engine):
    """Rebuild the FTS index from the memories table.

    Drops and recreates the virtual table to recover from corruption,
    then repopulates it from the source rows.
    """
    logger.info("Reindexing memories_fts...")
    with Session(engine) as session:
        session.exec(text("DROP TABLE IF EXISTS memories_fts;"))
        session.commit()

    setup_fts(engine)

    with Session(engine) as session:
        session.exec(text("""
            INSERT INTO memories_fts(rowid, content)
            SELECT id, content FROM memories;
        """))
        session.commit()
    logger.info("Reindexing complete.")


def index_memory(session: Session, memory_id: int, content: str):
    """Add one memory to the index. Caller commits."""
    session.exec(
        text("INSERT INTO memories_fts(rowid, content) VALUES (:id, :content)"),
        params={"id": memory_id, "content": content},
    )


# Both unindex helpers must run before the matching rows are deleted: FTS5
# needs the original content to drop the tokens. Callers commit.

def unindex_owner(session: Session, owner: str):
    """Remove index entries for every memory of `owner`."""
    session.exec(
        text("""
            INSERT INTO memories_fts(memories_fts, rowid, content)
            SELECT 'delete', id, content FROM memories WHERE owner = :owner
        """),
        params={"owner": owner},
    )


def unindex_below(session: Session, floor: float):
    """Remove index entries for every memory whose salience is under `floor`."""
    session.exec(
        text("""
            INSERT INTO memories_fts(memories_fts, rowid, content)
            SELECT 'delete', id, content FROM memories WHERE salience < :floor
        """),
        params={"floor": floor},
    )


def build_match_query(keywords: Iterable[str]) -> str:
    """OR together one quoted prefix term per keyword.

    Quoting keeps words like NOT or NEAR from being read as operators.
    """
    terms = []
    for kw in keywords:
        kw = kw.replace('"', "").strip()
        if kw:
            terms.append(f'"{kw}"*')
    return " OR ".join(terms)


def search_memory_ids(session: Session, owner: str, query: str, floor: float, limit: int) -> List[int]:
    """Return ids of the owner's memories matching `query`, best match first."""
    rows = session.exec(
        text("""
            SELECT m.id
            FROM memories_fts
            JOIN memories m ON m.id = memories_fts.rowid
            WHERE memories_fts MATCH :query
              AND m.owner = :owner
              AND m.salience >= :floor
            ORDER BY rank
            LIMIT :limit
        """),
        params={"query": query, "owner": owner, "floor": floor, "limit": limit},
    ).all()
    return [row[0] for row in rows]
