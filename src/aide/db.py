from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session
from aide.config import settings
from aide.logging import logger

DATA_DIR = settings.DATA_DIR
DB_URL = settings.db_url


def make_engine(url: str = DB_URL) -> Engine:
    """Create an engine with the pragmas the memory store relies on.

    In-memory URLs get a single shared connection so that store calls made
    from worker threads see the same database.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        eng = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        eng = create_engine(url, echo=False, connect_args={"check_same_thread": False})

    @event.listens_for(eng, "connect")
    def _set_pragmas(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()

    return eng


engine = make_engine()


def init_db(eng: Engine = engine):
    if eng is engine and not DATA_DIR.exists():
        DATA_DIR.mkdir(parents=True, exist_ok=True)

    # Import all models here so SQLModel knows about them
    from aide.models import memory, session  # noqa: F401
    from aide.search.fts import setup_fts

    logger.info(f"Initializing database at {eng.url}")
    SQLModel.metadata.create_all(eng)
    setup_fts(eng)


def get_session():
    with Session(engine) as session:
        yield session
