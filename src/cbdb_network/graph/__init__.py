"""Graph assembly, metrics and layout for relationship networks.

Public API:
    Types: RelationType, PersonNode, RelationEdge, GraphSnapshot,
        MetricsResult, DegreeDistribution, NetworkResult
    BatchLoader: Batched edge/node access over a RelationStore.
    NetworkExpander: Bounded BFS network assembly.
    GraphWorkerPool: Named-task pool for metrics and layout.
    populate_coordinates_with_layout, ForceLayoutRunner: Coordinates.
    write_gexf: GEXF export.
"""

from .types import (
    DegreeDistribution,
    GraphSnapshot,
    MetricsResult,
    NetworkResult,
    PersonNode,
    PersonRecord,
    RelationEdge,
    RelationType,
    SearchResult,
    node_key,
    parse_node_key,
)
from .loader import BatchLoader
from .sizing import NodeImportance, calculate_node_size
from .expansion import NetworkExpander
from .metrics import calculate_all_metrics
from .layout import (
    ForceLayoutRunner,
    populate_coordinates,
    populate_coordinates_batch,
    populate_coordinates_with_layout,
)
from .worker_pool import WORKER_TASKS, GraphWorkerPool
from .export import snapshot_to_networkx, write_gexf

__all__ = [
    "RelationType",
    "PersonNode",
    "RelationEdge",
    "GraphSnapshot",
    "DegreeDistribution",
    "MetricsResult",
    "NetworkResult",
    "PersonRecord",
    "SearchResult",
    "node_key",
    "parse_node_key",
    "BatchLoader",
    "NodeImportance",
    "calculate_node_size",
    "NetworkExpander",
    "calculate_all_metrics",
    "ForceLayoutRunner",
    "populate_coordinates",
    "populate_coordinates_batch",
    "populate_coordinates_with_layout",
    "WORKER_TASKS",
    "GraphWorkerPool",
    "snapshot_to_networkx",
    "write_gexf",
]
