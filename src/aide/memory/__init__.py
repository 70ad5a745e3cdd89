from aide.memory.errors import MemoryStoreError, ValidationError, StorageError, SearchDegradedError
from aide.memory.store import MemoryStore, SweepResult
from aide.memory.retriever import Retriever, extract_keywords, format_context
from aide.memory.service import MemoryService
from aide.memory.sweeper import DecaySweeper

__all__ = [
    "MemoryStoreError",
    "ValidationError",
    "StorageError",
    "SearchDegradedError",
    "MemoryStore",
    "SweepResult",
    "Retriever",
    "extract_keywords",
    "format_context",
    "MemoryService",
    "DecaySweeper",
]
