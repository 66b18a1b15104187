"""Relation store layer: the data-access boundary for network assembly.

Public API:
    RelationStore: Protocol all stores implement.
    InMemoryRelationStore: Dict-based store for testing.
    SQLiteRelationStore: Store over CBDB SQLite tables.
    KuzuRelationStore: Store over a Kuzu property graph.
    create_relation_store: Factory selecting a store by backend name.
"""

from __future__ import annotations

from typing import Any

from .kuzu_store import KuzuRelationStore
from .memory_store import InMemoryRelationStore
from .protocol import RELATION_COUNT_FIELDS, RelationStore
from .sqlite_store import SQLiteRelationStore


def create_relation_store(backend: str = "sqlite", **kwargs: Any) -> RelationStore:
    """Create a relation store.

    Args:
        backend: ``"sqlite"`` (CBDB database file), ``"kuzu"`` (graph
            database directory), ``"memory"`` (testing).
        **kwargs: Backend-specific configuration (``db_path``, ``store_id``).

    Returns:
        A RelationStore implementation.

    Raises:
        ValueError: If *backend* is unrecognised.
    """
    if backend == "sqlite":
        return SQLiteRelationStore(
            db_path=kwargs["db_path"],
            store_id=kwargs.get("store_id"),
        )
    elif backend == "kuzu":
        return KuzuRelationStore(
            db_path=kwargs["db_path"],
            store_id=kwargs.get("store_id"),
        )
    elif backend == "memory":
        return InMemoryRelationStore(
            store_id=kwargs.get("store_id", "memory"),
        )
    else:
        raise ValueError(
            f"Unknown backend: {backend!r}.  "
            f"Choose from: 'sqlite', 'kuzu', 'memory'"
        )


__all__ = [
    "RelationStore",
    "RELATION_COUNT_FIELDS",
    "InMemoryRelationStore",
    "SQLiteRelationStore",
    "KuzuRelationStore",
    "create_relation_store",
]
