"""Errors raised by the memory subsystem."""


class MemoryStoreError(Exception):
    """Base class for memory subsystem failures."""


class ValidationError(MemoryStoreError, ValueError):
    """Malformed input rejected before it reaches storage."""


class StorageError(MemoryStoreError):
    """The underlying database failed; fatal to the calling operation."""


class SearchDegradedError(StorageError):
    """Keyword search failed. Callers may fall back to recency-only recall."""
