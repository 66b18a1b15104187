"""cbdb-network-lib: Relationship networks over the CBDB biographical database."""

__version__ = "0.1.0"

from .config import NetworkConfig
from .exceptions import (
    InvalidInputError,
    MalformedGraphError,
    NetworkError,
    RequestSupersededError,
    StoreUnavailableError,
    WorkerFailureError,
)
from .graph import (
    BatchLoader,
    ForceLayoutRunner,
    GraphSnapshot,
    GraphWorkerPool,
    MetricsResult,
    NetworkExpander,
    NetworkResult,
    PersonNode,
    PersonRecord,
    RelationEdge,
    RelationType,
    SearchResult,
    populate_coordinates,
    populate_coordinates_batch,
    populate_coordinates_with_layout,
    write_gexf,
)
from .search import PersonSearchService, SupersedingSearch
from .service import PersonNetworkService
from .stores import (
    InMemoryRelationStore,
    KuzuRelationStore,
    RelationStore,
    SQLiteRelationStore,
    create_relation_store,
)

__all__ = [
    # Service layer
    "PersonNetworkService",
    "PersonSearchService",
    "SupersedingSearch",
    "NetworkConfig",
    # Graph core
    "RelationType",
    "PersonNode",
    "RelationEdge",
    "GraphSnapshot",
    "MetricsResult",
    "NetworkResult",
    "PersonRecord",
    "SearchResult",
    "BatchLoader",
    "NetworkExpander",
    "GraphWorkerPool",
    "ForceLayoutRunner",
    "populate_coordinates",
    "populate_coordinates_batch",
    "populate_coordinates_with_layout",
    "write_gexf",
    # Stores
    "RelationStore",
    "InMemoryRelationStore",
    "SQLiteRelationStore",
    "KuzuRelationStore",
    "create_relation_store",
    # Errors
    "NetworkError",
    "StoreUnavailableError",
    "InvalidInputError",
    "MalformedGraphError",
    "WorkerFailureError",
    "RequestSupersededError",
]
