"""Graph metrics computed inside pool workers.

Every function takes the plain worker payload (``{"nodes": [...],
"edges": [...]}`` with node ``key`` and edge ``source``/``target``) and
returns plain data, so it can run in a thread or a separate process.

Metrics are computed with networkx on the simple undirected projection
of the payload: self-loops are ignored and parallel edges of different
relation types between the same pair count once.

Public API:
    build_graph, calculate_density, calculate_avg_degree,
    calculate_clustering_coefficient, calculate_degree_distribution,
    find_connected_components, calculate_all_metrics,
    calculate_betweenness_centrality
"""

from __future__ import annotations

from typing import Any

import networkx as nx

from ..exceptions import MalformedGraphError


def build_graph(graph_data: dict[str, Any]) -> nx.Graph:
    """Simple undirected graph keyed by node key, in node order.

    Raises:
        MalformedGraphError: If an edge references a key not in the node list.
    """
    G = nx.Graph()
    G.add_nodes_from(node["key"] for node in graph_data.get("nodes", []))

    for edge in graph_data.get("edges", []):
        source, target = edge["source"], edge["target"]
        for endpoint in (source, target):
            if endpoint not in G:
                raise MalformedGraphError(
                    f"Edge {source}->{target} references unknown node {endpoint}"
                )
        if source != target:
            G.add_edge(source, target)
    return G


def calculate_density(node_count: int, edge_count: int) -> float:
    if node_count <= 1:
        return 0.0
    max_edges = node_count * (node_count - 1) / 2
    return edge_count / max_edges


def calculate_avg_degree(node_count: int, edge_count: int) -> float:
    if node_count == 0:
        return 0.0
    return 2 * edge_count / node_count


def _clustering(G: nx.Graph) -> float:
    # nx.average_clustering would count degree < 2 nodes as zero.
    nodes = [node for node, degree in G.degree() if degree >= 2]
    if not nodes:
        return 0.0
    local = nx.clustering(G, nodes)
    return sum(local.values()) / len(nodes)


def calculate_clustering_coefficient(graph_data: dict[str, Any]) -> float:
    """Mean local clustering over nodes with degree >= 2.

    Nodes with fewer than two neighbors are left out of the average
    rather than counted as zero.
    """
    return _clustering(build_graph(graph_data))


def _degree_distribution(G: nx.Graph) -> dict[str, float]:
    degrees = sorted(degree for _, degree in G.degree())
    if not degrees:
        return {"min": 0, "max": 0, "median": 0, "mean": 0.0}
    return {
        "min": degrees[0],
        "max": degrees[-1],
        "median": degrees[len(degrees) // 2],
        "mean": sum(degrees) / len(degrees),
    }


def calculate_degree_distribution(graph_data: dict[str, Any]) -> dict[str, float]:
    """min / max / median / mean over the sorted degree sequence.

    The median is the element at ``len // 2`` of the sorted sequence.
    """
    return _degree_distribution(build_graph(graph_data))


def _component_sizes(G: nx.Graph) -> list[int]:
    return [len(component) for component in nx.connected_components(G)]


def find_connected_components(graph_data: dict[str, Any]) -> list[int]:
    """Sizes of connected components, in order of first node discovery."""
    return _component_sizes(build_graph(graph_data))


def calculate_all_metrics(graph_data: dict[str, Any]) -> dict[str, Any]:
    """Every graph-level statistic from one graph build.

    ``edgeCount`` counts distinct linked pairs, so it can be lower than
    the number of edges in the payload.
    """
    G = build_graph(graph_data)
    node_count = G.number_of_nodes()
    edge_count = G.number_of_edges()
    components = _component_sizes(G)

    return {
        "nodeCount": node_count,
        "edgeCount": edge_count,
        "density": nx.density(G) if node_count > 1 else 0.0,
        "avgDegree": calculate_avg_degree(node_count, edge_count),
        "clusteringCoefficient": _clustering(G),
        "degreeDistribution": _degree_distribution(G),
        "componentCount": len(components),
        "largestComponentSize": max(components, default=0),
        "isConnected": len(components) == 1,
    }


def calculate_betweenness_centrality(
    graph_data: dict[str, Any],
    sample_nodes: list[Any] | None = None,
) -> list[tuple[Any, int]]:
    """Approximate centrality per node.

    NOTE: this is the node degree, not shortest-path betweenness.  It is a
    cheap stand-in for ranking hubs and must not be read as exact
    betweenness.

    Args:
        graph_data: Worker payload.
        sample_nodes: Optional subset of node keys to score.

    Returns:
        ``(node_key, score)`` pairs in node (or sample) order.
    """
    G = build_graph(graph_data)
    keys = sample_nodes if sample_nodes is not None else list(G)
    return [(key, G.degree(key) if key in G else 0) for key in keys]


__all__ = [
    "build_graph",
    "calculate_density",
    "calculate_avg_degree",
    "calculate_clustering_coefficient",
    "calculate_degree_distribution",
    "find_connected_components",
    "calculate_all_metrics",
    "calculate_betweenness_centrality",
]
