# src/credfeed/store/__init__.py

"""
Storage layer for credfeed.
Record tables plus the parent -> children reference index, in memory or in Neo4j.
"""

from .base import RecordStore
from .memory import InMemoryStore
from .snapshot import dump_snapshot, load_snapshot

__all__ = [
    "RecordStore",
    "InMemoryStore",
    "dump_snapshot",
    "load_snapshot",
    "open_store",
]


def open_store(config) -> RecordStore:
    """Build the RecordStore selected by ``config.store.backend``."""
    from credfeed.core.config import StoreBackend

    if config.store.backend == StoreBackend.NEO4J:
        from .graph_db import Neo4jStore

        return Neo4jStore.from_config(config.neo4j)
    return InMemoryStore()
