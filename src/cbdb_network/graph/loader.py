"""Batch loader for graph edges and node metadata.

Wraps a RelationStore so that one BFS layer costs a constant number of
store queries instead of one query per person.

Public API:
    BatchLoader: get_edges_batch / get_nodes_batch over a RelationStore.
    dedupe_person_ids: Validate and deduplicate seed person ids.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from ..exceptions import InvalidInputError, StoreUnavailableError
from .types import PersonNode, RelationEdge, RelationType

if TYPE_CHECKING:
    from ..stores.protocol import RelationStore

logger = logging.getLogger(__name__)


def dedupe_person_ids(person_ids: Iterable[int]) -> list[int]:
    """Deduplicate ids keeping first-seen order.

    Raises:
        InvalidInputError: If no ids are given or an id is not an integer.
    """
    ids: list[int] = []
    seen: set[int] = set()
    for pid in person_ids:
        if isinstance(pid, bool) or not isinstance(pid, int):
            raise InvalidInputError(f"Person id must be an integer: {pid!r}")
        if pid not in seen:
            seen.add(pid)
            ids.append(pid)
    if not ids:
        raise InvalidInputError("person_ids must not be empty")
    return ids


class BatchLoader:
    """Read-only batch access to edges and nodes.

    Args:
        store: Any RelationStore implementation.
    """

    def __init__(self, store: RelationStore) -> None:
        self._store = store

    @property
    def store(self) -> RelationStore:
        return self._store

    def get_edges_batch(
        self,
        person_ids: Iterable[int],
        relation_types: Iterable[RelationType | str],
    ) -> list[RelationEdge]:
        """Fetch every edge of *relation_types* touching any of *person_ids*.

        Args:
            person_ids: Non-empty ids; duplicates are removed before querying.
            relation_types: Relation families to fetch. Empty means no edges.

        Returns:
            Edges in store order.

        Raises:
            InvalidInputError: Empty ids or unknown relation type.
            StoreUnavailableError: The store failed; nothing is returned.
        """
        ids = dedupe_person_ids(person_ids)
        types = RelationType.parse(relation_types)
        if not types:
            return []

        try:
            edges = self._store.find_edges(ids, types)
        except StoreUnavailableError:
            logger.error("Edge batch failed for %d ids (%s)", len(ids), _type_names(types))
            raise
        logger.debug(
            "Loaded %d edges for %d ids (%s)", len(edges), len(ids), _type_names(types),
        )
        return edges

    def get_nodes_batch(self, person_ids: Iterable[int]) -> list[PersonNode]:
        """Fetch node metadata for *person_ids* in one store query.

        Ids unknown to the store are absent from the result.

        Raises:
            InvalidInputError: Empty ids.
            StoreUnavailableError: The store failed; nothing is returned.
        """
        ids = dedupe_person_ids(person_ids)
        try:
            nodes = self._store.find_nodes(ids)
        except StoreUnavailableError:
            logger.error("Node batch failed for %d ids", len(ids))
            raise
        logger.debug("Loaded %d/%d nodes", len(nodes), len(ids))
        return nodes

    def edge_stats(self, person_id: int) -> dict[str, int]:
        """Per-family relation counts for one person plus their total."""
        (pid,) = dedupe_person_ids([person_id])
        counts = self._store.count_relations_batch([pid])[pid]
        stats = {
            "kinship": counts.get("kinship", 0),
            "association": counts.get("association", 0),
            "office": counts.get("office", 0),
        }
        stats["total"] = sum(stats.values())
        return stats


def _type_names(types: list[RelationType]) -> str:
    return ",".join(t.value for t in types)


__all__ = ["BatchLoader", "dedupe_person_ids"]
