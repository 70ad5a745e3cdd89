from aide.search.fts import (
    setup_fts,
    reindex_all,
    index_memory,
    unindex_owner,
    unindex_below,
    build_match_query,
    search_memory_ids,
)

__all__ = [
    "setup_fts",
    "reindex_all",
    "index_memory",
    "unindex_owner",
    "unindex_below",
    "build_match_query",
    "search_memory_ids",
]
