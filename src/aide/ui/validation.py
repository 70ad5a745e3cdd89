from typing import List
from sqlalchemy import text
from sqlmodel import Session, select
from aide.db import engine, DATA_DIR
from aide.models.memory import Memory
from aide.models.session import AgentSession

def validate_schema() -> List[str]:
    """Validate that required models carry table definitions."""
    errors = []

    required_models = [Memory, AgentSession]
    for model in required_models:
        if not hasattr(model, "__table__"):
            errors.append(f"Model {model.__name__} is missing table definition.")

    return errors

def validate_data_dir() -> List[str]:
    """Validate the data directory exists and is writable."""
    errors = []

    if not DATA_DIR.exists():
        errors.append(f"Data directory missing: {DATA_DIR} (run `aide db init`)")
        return errors

    try:
        test_file = DATA_DIR / ".write_test"
        test_file.touch()
        test_file.unlink()
    except Exception as e:
        errors.append(f"Cannot write to data directory {DATA_DIR}: {e}")

    return errors

def validate_db_connection() -> List[str]:
    """Validate database connection, memory table and search index."""
    errors = []
    try:
        with Session(engine) as session:
            session.exec(select(Memory).limit(1)).first()
            session.exec(text("SELECT rowid FROM memories_fts LIMIT 1")).first()
    except Exception as e:
        errors.append(f"Database connection failed: {e}")

    return errors

def run_all_checks() -> List[str]:
    """Run all validation checks."""
    errors = []
    errors.extend(validate_schema())
    errors.extend(validate_data_dir())
    errors.extend(validate_db_connection())
    return errors
