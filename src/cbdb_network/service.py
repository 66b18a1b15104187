"""Network exploration service.

Ties the pieces together for one request: expand the network on the
caller's thread, then fan metrics and coordinate seeding out to the worker
pool and merge whatever succeeded.

Public API:
    PersonNetworkService: explore_network and its convenience variants.
    generate_insights: Human-readable remarks from graph metrics.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

from .config import LAYOUT_TYPES, NetworkConfig
from .exceptions import InvalidInputError, WorkerFailureError
from .graph.expansion import NetworkExpander
from .graph.export import write_gexf
from .graph.loader import BatchLoader, dedupe_person_ids
from .graph.types import GraphSnapshot, MetricsResult, NetworkResult, RelationType
from .graph.worker_pool import GraphWorkerPool

if TYPE_CHECKING:
    from .stores.protocol import RelationStore

logger = logging.getLogger(__name__)

ALL_RELATION_TYPES = (RelationType.KINSHIP, RelationType.ASSOCIATION, RelationType.OFFICE)

METRICS_TASK = "calculate_all_metrics"
LAYOUT_TASK = "populate_coordinates_with_layout"


def generate_insights(metrics: MetricsResult) -> list[str]:
    """Structural remarks on density, clustering, components and hubs."""
    insights: list[str] = []

    if metrics.density > 0.5:
        insights.append("Highly dense network indicates strong interconnectedness")
    elif metrics.density < 0.1:
        insights.append("Sparse network suggests selective or limited connections")

    if metrics.clustering_coefficient > 0.5:
        insights.append("High clustering indicates tight-knit communities")
    elif metrics.clustering_coefficient < 0.1:
        insights.append("Low clustering suggests hierarchical or star-like structure")

    if not metrics.is_connected and metrics.component_count > 1:
        insights.append(f"Network has {metrics.component_count} separate components")

    spread = metrics.degree_distribution.max - metrics.degree_distribution.min
    if spread > 20:
        insights.append("Wide degree distribution indicates presence of hubs")

    return insights


class PersonNetworkService:
    """Relationship-network exploration over a RelationStore.

    Args:
        store: Data source for edges, nodes and names.
        config: Limits and pool settings.
        pool: Shared worker pool; when omitted the service owns one and
            closes it in close().

    Example:
        >>> with PersonNetworkService(store) as service:
        ...     result = service.explore_network([1762], 1, ["kinship"], seed=42)
        >>> [n.person_id for n in result.snapshot.nodes]
        [1762, 526]
    """

    def __init__(
        self,
        store: RelationStore,
        config: NetworkConfig | None = None,
        pool: GraphWorkerPool | None = None,
    ) -> None:
        self._config = config or NetworkConfig()
        self._loader = BatchLoader(store)
        self._expander = NetworkExpander(self._loader, self._config)
        self._owns_pool = pool is None
        self._pool = pool or GraphWorkerPool(self._config)

    @property
    def loader(self) -> BatchLoader:
        return self._loader

    @property
    def pool(self) -> GraphWorkerPool:
        return self._pool

    # ── exploration ───────────────────────────────────────

    def explore_network(
        self,
        person_ids: Iterable[int],
        depth: int = 1,
        relation_types: Iterable[RelationType | str] | None = None,
        layout_type: str | None = None,
        seed: int | None = None,
        include_reciprocal: bool = False,
    ) -> NetworkResult:
        """Assemble a network and enrich it with metrics and coordinates.

        The metrics and layout tasks run concurrently and fail
        independently.  A failed task is reported under ``errors`` and the
        result is flagged ``partial``; the other task's output is kept.

        Args:
            person_ids: Seed persons.
            depth: BFS depth.
            relation_types: Families to follow; None means all three.
            layout_type: Coordinate layout; defaults to config.default_layout.
            seed: Random-layout seed for reproducible coordinates.
            include_reciprocal: Also link final-layer nodes to each other.

        Raises:
            InvalidInputError: Bad seeds, depth, relation type or layout.
            StoreUnavailableError: The store failed during expansion.
            MalformedGraphError: The assembled graph has a dangling edge.
        """
        layout_type = layout_type or self._config.default_layout
        if layout_type not in LAYOUT_TYPES:
            raise InvalidInputError(f"Unknown layout type: {layout_type!r}")
        types = ALL_RELATION_TYPES if relation_types is None else relation_types
        seeds = dedupe_person_ids(person_ids)

        snapshot = self._expander.build_network(
            seeds, depth, types, include_reciprocal=include_reciprocal,
        )
        snapshot.validate()
        payload = snapshot.to_payload()

        metrics_future = self._pool.submit(METRICS_TASK, payload)
        layout_future = self._pool.submit(LAYOUT_TASK, payload, layout_type, seed)
        deadline = time.monotonic() + self._config.task_timeout

        errors: dict[str, dict[str, Any]] = {}
        metrics: MetricsResult | None = None
        try:
            metrics = MetricsResult.from_dict(
                self._pool.wait_for(METRICS_TASK, metrics_future, self._config.task_timeout)
            )
        except WorkerFailureError as e:
            logger.warning("Metrics unavailable for %s: %s", seeds, e)
            errors["metrics"] = e.to_dict()

        try:
            # Both tasks share one time budget.
            remaining = max(0.0, deadline - time.monotonic())
            placed = self._pool.wait_for(LAYOUT_TASK, layout_future, remaining)
            snapshot = GraphSnapshot.from_payload(placed, truncated=snapshot.truncated)
        except WorkerFailureError as e:
            logger.warning("Layout unavailable for %s: %s", seeds, e)
            errors["layout"] = e.to_dict()

        logger.info(
            "Explored network around %s: %d nodes, %d edges%s",
            seeds, len(snapshot.nodes), len(snapshot.edges), " (partial)" if errors else "",
        )
        return NetworkResult(
            central_person_ids=seeds,
            snapshot=snapshot,
            metrics=metrics,
            errors=errors,
            partial=bool(errors),
            insights=generate_insights(metrics) if metrics else [],
        )

    def explore_direct_network(
        self,
        person_id: int,
        include_kinship: bool = True,
        include_association: bool = True,
        include_office: bool = False,
        **kwargs: Any,
    ) -> NetworkResult:
        """Depth-1 network of a person's direct relations."""
        types = []
        if include_kinship:
            types.append(RelationType.KINSHIP)
        if include_association:
            types.append(RelationType.ASSOCIATION)
        if include_office:
            types.append(RelationType.OFFICE)
        return self.explore_network([person_id], 1, types, **kwargs)

    def explore_association_network(
        self,
        person_id: int,
        max_depth: int = 2,
        include_kinship: bool = False,
        **kwargs: Any,
    ) -> NetworkResult:
        types = [RelationType.ASSOCIATION]
        if include_kinship:
            types.append(RelationType.KINSHIP)
        return self.explore_network([person_id], max_depth, types, **kwargs)

    def explore_kinship_network(self, person_id: int, depth: int = 2, **kwargs: Any) -> NetworkResult:
        return self.explore_network([person_id], depth, [RelationType.KINSHIP], **kwargs)

    def export_network_to_gexf(
        self,
        person_id: int,
        path: str | Path,
        depth: int = 2,
        relation_types: Iterable[RelationType | str] | None = None,
        seed: int | None = None,
    ) -> Path:
        """Explore around *person_id* and write the network as GEXF."""
        result = self.explore_network([person_id], depth, relation_types, seed=seed)
        return write_gexf(result.snapshot, path)

    # ── direct pool access ────────────────────────────────

    def compute_metrics(self, snapshot: GraphSnapshot) -> MetricsResult:
        """Metrics for an existing snapshot.

        Raises:
            WorkerFailureError: The metrics task crashed or timed out.
        """
        return MetricsResult.from_dict(self._pool.exec(METRICS_TASK, snapshot.to_payload()))

    def populate_coordinates(
        self,
        snapshot: GraphSnapshot,
        layout_type: str = "random",
        seed: int | None = None,
    ) -> GraphSnapshot:
        """Return a copy of *snapshot* with coordinates on every node."""
        placed = self._pool.exec(LAYOUT_TASK, snapshot.to_payload(), layout_type, seed)
        return GraphSnapshot.from_payload(placed, truncated=snapshot.truncated)

    def central_nodes(self, snapshot: GraphSnapshot, top_n: int = 10, seed: int | None = None) -> list[tuple[str, int]]:
        """Most connected node keys (degree-based approximation)."""
        return self._pool.top_central_nodes(snapshot.to_payload(), top_n=top_n, seed=seed)

    def edge_stats(self, person_id: int) -> dict[str, int]:
        return self._loader.edge_stats(person_id)

    # ── lifecycle ──────────────────────────────────────────

    def close(self) -> None:
        if self._owns_pool:
            self._pool.close()

    def __enter__(self) -> PersonNetworkService:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


__all__ = ["PersonNetworkService", "generate_insights", "ALL_RELATION_TYPES"]
