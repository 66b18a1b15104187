"""Node importance levels and display sizes for network visualisation.

Five importance levels map to pixel sizes. Most nodes land in the middle
levels; the central person is HIGH and level HIGHEST is reserved.
"""

from __future__ import annotations

from enum import IntEnum


class NodeImportance(IntEnum):
    MINIMAL = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    HIGHEST = 5


NODE_IMPORTANCE_SIZES = {
    NodeImportance.MINIMAL: 0,
    NodeImportance.LOW: 4,
    NodeImportance.MEDIUM: 7,
    NodeImportance.HIGH: 10,
    NodeImportance.HIGHEST: 28,
}

NODE_TYPE_COLORS = {
    "central": "#ff6b6b",
    "kinship": "#95e77e",
    "association": "#4ecdc4",
    "office": "#f7b731",
}


def get_node_importance(depth: int, node_type: str | None = None) -> NodeImportance:
    """Importance from BFS depth and the node's primary relation type."""
    if depth == 0:
        return NodeImportance.HIGH
    if depth == 1:
        return NodeImportance.MEDIUM if node_type == "kinship" else NodeImportance.LOW
    return NodeImportance.MINIMAL


def get_node_size(importance: int) -> int:
    level = NodeImportance(min(5, max(1, round(importance))))
    return NODE_IMPORTANCE_SIZES[level]


def calculate_node_size(depth: int, node_type: str | None = None) -> int:
    return get_node_size(get_node_importance(depth, node_type))


__all__ = [
    "NodeImportance",
    "NODE_IMPORTANCE_SIZES",
    "NODE_TYPE_COLORS",
    "get_node_importance",
    "get_node_size",
    "calculate_node_size",
]
