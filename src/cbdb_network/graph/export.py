"""networkx conversion and GEXF export of assembled networks.

Public API:
    snapshot_to_networkx: GraphSnapshot -> networkx.MultiGraph
    write_gexf: Write a snapshot to a GEXF file for Gephi.
"""

from __future__ import annotations

import logging
from pathlib import Path

import networkx as nx

from .types import GraphSnapshot, node_key

logger = logging.getLogger(__name__)

# GEXF attribute values must be scalars.
_GEXF_SCALARS = (str, int, float, bool)


def _hex_to_rgb(color: str) -> dict[str, int] | None:
    text = color.lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        return None
    try:
        return {"r": int(text[0:2], 16), "g": int(text[2:4], 16), "b": int(text[4:6], 16)}
    except ValueError:
        return None


def snapshot_to_networkx(snapshot: GraphSnapshot) -> nx.MultiGraph:
    """Build an undirected multigraph keyed by node key.

    Each relation edge becomes its own multigraph edge so kinship and
    association links between the same pair are both kept.
    """
    G = nx.MultiGraph()
    for node in snapshot.nodes:
        attrs = {k: v for k, v in node.attributes.items() if isinstance(v, _GEXF_SCALARS)}
        attrs["label"] = node.label
        attrs["person_id"] = node.person_id

        viz: dict = {}
        x, y = node.attributes.get("x"), node.attributes.get("y")
        if isinstance(x, (int, float)) and isinstance(y, (int, float)):
            viz["position"] = {"x": float(x), "y": float(y), "z": 0.0}
        if isinstance(node.attributes.get("size"), (int, float)):
            viz["size"] = float(node.attributes["size"])
        rgb = _hex_to_rgb(str(node.attributes.get("color", "")))
        if rgb:
            viz["color"] = {**rgb, "a": 1.0}
        if viz:
            attrs["viz"] = viz

        G.add_node(node.key, **attrs)

    for edge in snapshot.edges:
        G.add_edge(
            node_key(edge.source),
            node_key(edge.target),
            key=edge.edge_type.value,
            edge_type=edge.edge_type.value,
            edge_code=edge.edge_code,
            label=edge.label,
        )
    return G


def write_gexf(snapshot: GraphSnapshot, path: str | Path) -> Path:
    """Write *snapshot* as GEXF and return the output path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    G = snapshot_to_networkx(snapshot)
    nx.write_gexf(G, path)
    logger.info(
        "Exported network (%d nodes, %d edges) to %s",
        G.number_of_nodes(), G.number_of_edges(), path,
    )
    return path


__all__ = ["snapshot_to_networkx", "write_gexf"]
