"""Graph expansion engine: bounded breadth-first network assembly.

Public API:
    NetworkExpander: Builds a GraphSnapshot around one or more seed persons.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..config import NetworkConfig
from ..exceptions import InvalidInputError
from .loader import BatchLoader, dedupe_person_ids
from .sizing import NODE_TYPE_COLORS, calculate_node_size
from .types import GraphSnapshot, PersonNode, RelationEdge, RelationType

logger = logging.getLogger(__name__)

# Reciprocal edges are only fetched for networks below this size.
RECIPROCAL_NODE_LIMIT = 500


class NetworkExpander:
    """Breadth-first expansion over the batch loader.

    Each layer fetches edges for the frontier only (the nodes added by the
    previous layer), so nothing is fetched twice.  The visited set is keyed
    by person id, which keeps cyclic kinship graphs finite.

    Args:
        loader: Batch loader over a relation store.
        config: Depth and node ceilings.
    """

    def __init__(self, loader: BatchLoader, config: NetworkConfig | None = None) -> None:
        self._loader = loader
        self._config = config or NetworkConfig()

    def build_network(
        self,
        seed_person_ids: Iterable[int],
        depth: int,
        relation_types: Iterable[RelationType | str],
        include_reciprocal: bool = False,
    ) -> GraphSnapshot:
        """Assemble the network around *seed_person_ids*.

        Args:
            seed_person_ids: Non-empty seed ids.
            depth: Number of BFS layers (0 returns just the seeds).
            relation_types: Relation families to follow; empty yields no edges.
            include_reciprocal: After expansion, also add edges between
                nodes of the final layer (small networks only).

        Returns:
            GraphSnapshot whose edges all connect nodes of the snapshot.

        Raises:
            InvalidInputError: Bad seeds, depth, or relation type.
            StoreUnavailableError: Propagated from the loader.
        """
        seeds = dedupe_person_ids(seed_person_ids)
        types = RelationType.parse(relation_types)
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
            raise InvalidInputError(f"depth must be a non-negative integer: {depth!r}")
        if depth > self._config.max_depth:
            raise InvalidInputError(
                f"depth {depth} exceeds the maximum of {self._config.max_depth}"
            )
        if len(seeds) > self._config.max_nodes:
            raise InvalidInputError(
                f"{len(seeds)} seeds exceed the node ceiling of {self._config.max_nodes}"
            )

        nodes: dict[int, PersonNode] = {}
        depths: dict[int, int] = {}
        edges: dict[tuple, RelationEdge] = {}
        truncated = False

        self._admit(nodes, depths, seeds, 0)
        frontier = list(seeds)

        for layer in range(1, depth + 1):
            if not frontier or not types:
                break

            batch = self._loader.get_edges_batch(frontier, types)
            new_ids: list[int] = []
            new_set: set[int] = set()

            for edge in batch:
                if edge.source == edge.target or edge.pair_key in edges:
                    continue
                admitted = True
                for endpoint in (edge.source, edge.target):
                    if endpoint in nodes or endpoint in new_set:
                        continue
                    if len(nodes) + len(new_ids) >= self._config.max_nodes:
                        truncated = True
                        admitted = False
                        break
                    new_ids.append(endpoint)
                    new_set.add(endpoint)
                if admitted:
                    edges[edge.pair_key] = edge

            logger.debug(
                "Layer %d: frontier=%d edges=%d new=%d", layer, len(frontier), len(batch), len(new_ids),
            )
            if new_ids:
                self._admit(nodes, depths, new_ids, layer)
            frontier = new_ids

        if truncated:
            logger.warning(
                "Network around %s truncated at %d nodes", seeds, self._config.max_nodes,
            )

        if include_reciprocal and depth > 0 and types and len(nodes) < RECIPROCAL_NODE_LIMIT:
            added = 0
            for edge in self._loader.get_edges_batch(list(nodes), types):
                if edge.source == edge.target or edge.pair_key in edges:
                    continue
                if edge.source in nodes and edge.target in nodes:
                    edges[edge.pair_key] = edge
                    added += 1
            logger.debug("Added %d reciprocal edges among %d nodes", added, len(nodes))

        ordered_edges = list(edges.values())
        return GraphSnapshot(
            nodes=self._decorate(nodes, depths, ordered_edges),
            edges=ordered_edges,
            truncated=truncated,
        )

    # ── private helpers ─────────────────────────────────────

    def _admit(
        self,
        nodes: dict[int, PersonNode],
        depths: dict[int, int],
        person_ids: list[int],
        layer: int,
    ) -> None:
        """Load node data for *person_ids*; unknown ids become placeholders."""
        loaded = {n.person_id: n for n in self._loader.get_nodes_batch(person_ids)}
        for pid in person_ids:
            nodes[pid] = loaded.get(pid) or PersonNode(person_id=pid, label=f"Person {pid}")
            depths[pid] = layer

    @staticmethod
    def _decorate(
        nodes: dict[int, PersonNode],
        depths: dict[int, int],
        edges: list[RelationEdge],
    ) -> list[PersonNode]:
        """Attach depth, node type, colour and size to every node."""
        primary: dict[int, str] = {}
        for edge in edges:
            for endpoint in (edge.source, edge.target):
                current = primary.get(endpoint)
                if current is None or (current != "kinship" and edge.edge_type is RelationType.KINSHIP):
                    primary[endpoint] = edge.edge_type.value

        decorated: list[PersonNode] = []
        for pid, node in nodes.items():
            node_depth = depths[pid]
            node_type = "central" if node_depth == 0 else primary.get(pid, "association")
            attributes = dict(node.attributes)
            attributes.update({
                "depth": node_depth,
                "node_type": node_type,
                "color": NODE_TYPE_COLORS.get(node_type, "#666"),
                "size": calculate_node_size(node_depth, node_type),
            })
            decorated.append(PersonNode(person_id=pid, label=node.label, attributes=attributes))
        return decorated


__all__ = ["NetworkExpander", "RECIPROCAL_NODE_LIMIT"]
