"""Data structures for relationship networks.

Public API:
    RelationType: Edge family enum (kinship, association, office).
    PersonNode: Immutable person node with display attributes.
    RelationEdge: Immutable relation edge between two persons.
    GraphSnapshot: Request-scoped node list + edge list.
    DegreeDistribution: min/max/median/mean of the degree sequence.
    MetricsResult: Graph-level statistics derived from a snapshot.
    PersonRecord: One row of a name search.
    SearchResult: Page of search rows plus the total match count.
    NetworkResult: Combined network response (snapshot, metrics, flags).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from ..exceptions import InvalidInputError, MalformedGraphError

NODE_KEY_PREFIX = "person:"


class RelationType(Enum):
    """Families of relation edges that can be fetched from the store."""

    KINSHIP = "kinship"
    ASSOCIATION = "association"
    OFFICE = "office"

    @classmethod
    def parse(cls, values: Iterable[RelationType | str]) -> list[RelationType]:
        """Convert strings or enums to a deduplicated list of RelationType.

        Raises:
            InvalidInputError: If any value is not a known relation type.
        """
        parsed: list[RelationType] = []
        for value in values:
            if isinstance(value, cls):
                rtype = value
            else:
                try:
                    rtype = cls(str(value).lower())
                except ValueError:
                    raise InvalidInputError(f"Unknown relation type: {value!r}") from None
            if rtype not in parsed:
                parsed.append(rtype)
        return parsed


def node_key(person_id: int) -> str:
    """Stable string key for a person node (``"person:<id>"``)."""
    return f"{NODE_KEY_PREFIX}{person_id}"


def parse_node_key(key: str | int) -> int:
    """Inverse of :func:`node_key`; bare integers are accepted as-is."""
    if isinstance(key, int):
        return key
    text = str(key)
    if text.startswith(NODE_KEY_PREFIX):
        text = text[len(NODE_KEY_PREFIX):]
    return int(text)


@dataclass(frozen=True)
class PersonNode:
    """An immutable person node.

    Attributes:
        person_id: CBDB person id (``c_personid``).
        label: Display label (Chinese name, else romanised name).
        attributes: Extra display data (dynasty, years, depth, size, x, y).
    """

    person_id: int
    label: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return node_key(self.person_id)

    def to_payload(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "id": self.person_id,
            "label": self.label,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> PersonNode:
        person_id = data.get("id")
        if person_id is None:
            person_id = parse_node_key(data["key"])
        return cls(
            person_id=int(person_id),
            label=str(data.get("label", "")),
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass(frozen=True)
class RelationEdge:
    """An immutable relation edge.

    Stored direction is source -> target; graph metrics treat it as
    undirected.

    Attributes:
        source: Person id of the recording person.
        target: Person id of the related person.
        edge_type: Relation family.
        edge_code: Kinship / association code, or office id for office edges.
        label: Display label of the code.
    """

    source: int
    target: int
    edge_type: RelationType
    edge_code: int = 0
    label: str = ""

    @property
    def pair_key(self) -> tuple[int, int, RelationType]:
        """Undirected identity used for per-type deduplication."""
        low, high = sorted((self.source, self.target))
        return (low, high, self.edge_type)

    def other(self, person_id: int) -> int:
        """Return the endpoint opposite *person_id*."""
        return self.target if self.source == person_id else self.source

    def to_payload(self) -> dict[str, Any]:
        return {
            "source": node_key(self.source),
            "target": node_key(self.target),
            "edgeType": self.edge_type.value,
            "edgeCode": self.edge_code,
            "label": self.label,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> RelationEdge:
        return cls(
            source=parse_node_key(data["source"]),
            target=parse_node_key(data["target"]),
            edge_type=RelationType(data["edgeType"]),
            edge_code=int(data.get("edgeCode") or 0),
            label=str(data.get("label", "")),
        )


@dataclass
class GraphSnapshot:
    """Transient graph assembled for one request.

    Attributes:
        nodes: Nodes in discovery order.
        edges: Edges in discovery order.
        truncated: True when expansion stopped at the node ceiling.
    """

    nodes: list[PersonNode] = field(default_factory=list)
    edges: list[RelationEdge] = field(default_factory=list)
    truncated: bool = False

    def node_ids(self) -> list[int]:
        return [n.person_id for n in self.nodes]

    def get_node(self, person_id: int) -> PersonNode | None:
        for node in self.nodes:
            if node.person_id == person_id:
                return node
        return None

    def validate(self) -> None:
        """Fail loudly on dangling edges.

        Raises:
            MalformedGraphError: If an edge endpoint is not in the node set.
        """
        known = set(self.node_ids())
        for edge in self.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in known:
                    raise MalformedGraphError(
                        f"Edge {edge.source}->{edge.target} ({edge.edge_type.value}) "
                        f"references unknown node {endpoint}"
                    )

    def to_payload(self) -> dict[str, Any]:
        """Plain-dict form handed across the worker boundary."""
        return {
            "nodes": [n.to_payload() for n in self.nodes],
            "edges": [e.to_payload() for e in self.edges],
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any], truncated: bool = False) -> GraphSnapshot:
        return cls(
            nodes=[PersonNode.from_payload(n) for n in data.get("nodes", [])],
            edges=[RelationEdge.from_payload(e) for e in data.get("edges", [])],
            truncated=truncated,
        )


@dataclass(frozen=True)
class DegreeDistribution:
    """Summary of the sorted degree sequence."""

    min: int = 0
    max: int = 0
    median: int = 0
    mean: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max, "median": self.median, "mean": self.mean}


@dataclass(frozen=True)
class MetricsResult:
    """Read-only graph statistics computed from a snapshot.

    Statistics describe the simple undirected graph behind the snapshot.
    ``edge_count`` counts distinct linked pairs: a pair joined by both a
    kinship and an association edge is two entries in ``snapshot.edges``
    but one edge here, and self-loops are not counted.
    """

    node_count: int = 0
    edge_count: int = 0
    density: float = 0.0
    avg_degree: float = 0.0
    clustering_coefficient: float = 0.0
    degree_distribution: DegreeDistribution = field(default_factory=DegreeDistribution)
    component_count: int = 0
    largest_component_size: int = 0
    is_connected: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricsResult:
        dist = data.get("degreeDistribution") or {}
        return cls(
            node_count=data["nodeCount"],
            edge_count=data["edgeCount"],
            density=data["density"],
            avg_degree=data["avgDegree"],
            clustering_coefficient=data["clusteringCoefficient"],
            degree_distribution=DegreeDistribution(
                min=dist.get("min", 0),
                max=dist.get("max", 0),
                median=dist.get("median", 0),
                mean=dist.get("mean", 0.0),
            ),
            component_count=data["componentCount"],
            largest_component_size=data["largestComponentSize"],
            is_connected=data["isConnected"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodeCount": self.node_count,
            "edgeCount": self.edge_count,
            "density": self.density,
            "avgDegree": self.avg_degree,
            "clusteringCoefficient": self.clustering_coefficient,
            "degreeDistribution": self.degree_distribution.to_dict(),
            "componentCount": self.component_count,
            "largestComponentSize": self.largest_component_size,
            "isConnected": self.is_connected,
        }


@dataclass(frozen=True)
class PersonRecord:
    """One person row returned by name search."""

    person_id: int
    name: str = ""
    name_chn: str = ""
    birth_year: int | None = None
    death_year: int | None = None
    index_year: int | None = None
    dynasty_code: int | None = None

    @property
    def display_name(self) -> str:
        return self.name_chn or self.name or f"Person {self.person_id}"


@dataclass
class SearchResult:
    """A page of search results plus the total match count."""

    data: list[PersonRecord] = field(default_factory=list)
    total: int = 0


@dataclass
class NetworkResult:
    """Combined response of a network exploration.

    Attributes:
        central_person_ids: Seed persons of the exploration.
        snapshot: Assembled graph (with coordinates when layout succeeded).
        metrics: Graph statistics, or None when the metrics task failed.
        errors: Task name -> error dict for tasks that failed.
        partial: True when at least one pool task failed.
        insights: Human-readable remarks derived from the metrics.
    """

    central_person_ids: list[int] = field(default_factory=list)
    snapshot: GraphSnapshot = field(default_factory=GraphSnapshot)
    metrics: MetricsResult | None = None
    errors: dict[str, dict[str, Any]] = field(default_factory=dict)
    partial: bool = False
    insights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = self.snapshot.to_payload()
        return {
            "centralPersonIds": list(self.central_person_ids),
            "nodes": payload["nodes"],
            "edges": payload["edges"],
            "truncated": self.snapshot.truncated,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "errors": dict(self.errors),
            "partial": self.partial,
            "insights": list(self.insights),
        }


__all__ = [
    "RelationType",
    "PersonNode",
    "RelationEdge",
    "GraphSnapshot",
    "DegreeDistribution",
    "MetricsResult",
    "PersonRecord",
    "SearchResult",
    "NetworkResult",
    "node_key",
    "parse_node_key",
]
