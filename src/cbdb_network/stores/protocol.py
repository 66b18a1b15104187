"""RelationStore protocol -- the data-access boundary the network core consumes.

Public API:
    RelationStore: Runtime-checkable protocol all stores implement.
    RELATION_COUNT_FIELDS: Keys of the per-person relation count dicts.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..graph.types import PersonNode, PersonRecord, RelationEdge, RelationType

RELATION_COUNT_FIELDS = ("kinship", "association", "office", "text", "altname")


@runtime_checkable
class RelationStore(Protocol):
    """Common interface for CBDB relation stores.

    Every concrete implementation (SQLite, Kuzu, in-memory) satisfies this
    protocol so the loader and the search service can swap stores without
    changes.  All methods are read-only and raise
    ``StoreUnavailableError`` when the underlying store cannot be queried.
    """

    # ── identity ──────────────────────────────────────────────

    @property
    def store_id(self) -> str:
        """Unique identifier for this store instance."""
        ...

    # ── graph data ────────────────────────────────────────────

    def find_edges(
        self,
        person_ids: list[int],
        relation_types: list[RelationType],
    ) -> list[RelationEdge]:
        """Return every edge of *relation_types* touching any of *person_ids*.

        Issues at most one query per relation type regardless of how many
        ids are passed.
        """
        ...

    def find_nodes(self, person_ids: list[int]) -> list[PersonNode]:
        """Return node data for the ids that exist, in one query."""
        ...

    # ── search ────────────────────────────────────────────────

    def find_by_name(
        self,
        query: str,
        accurate: bool = False,
        start: int = 0,
        limit: int = 20,
    ) -> tuple[list[PersonRecord], int]:
        """Match primary and alternative names.

        Primary-name matches rank before alternative-name matches, then by
        person id.  Returns the requested page and the total match count.
        """
        ...

    def count_relations_batch(self, person_ids: list[int]) -> dict[int, dict[str, int]]:
        """Per-person relation counts keyed by ``RELATION_COUNT_FIELDS``.

        Every requested id appears in the result (zero counts when absent).
        """
        ...

    # ── lifecycle ─────────────────────────────────────────────

    def close(self) -> None:
        """Release resources held by the store."""
        ...


__all__ = ["RelationStore", "RELATION_COUNT_FIELDS"]
