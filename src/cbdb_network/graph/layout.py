"""Initial 2D coordinates and optional force-directed refinement.

Coordinate functions take the worker payload and return a *new* payload;
nodes that already carry finite numeric ``x``/``y`` attributes keep them.

Public API:
    populate_coordinates_with_layout: random / circle / grid seeding.
    populate_coordinates: random seeding with a time-based seed.
    populate_coordinates_batch: populate_coordinates over many payloads.
    ForceLayoutRunner: Cancellable, time-boxed background refinement.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable

from ..config import LAYOUT_TYPES
from ..exceptions import InvalidInputError

logger = logging.getLogger(__name__)

LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MODULUS = 2**31

COORDINATE_SPREAD = 1000
CIRCLE_RADIUS = 400
GRID_SPACING = 100


def _seeded_random(seed: int) -> Callable[[], float]:
    """Linear congruential generator yielding floats in [0, 1)."""
    state = int(seed) % LCG_MODULUS

    def next_value() -> float:
        nonlocal state
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return state / LCG_MODULUS

    return next_value


def _is_coordinate(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def has_coordinates(node: dict[str, Any]) -> bool:
    """True when *node* already carries finite numeric x and y."""
    attributes = node.get("attributes") or {}
    return _is_coordinate(attributes.get("x")) and _is_coordinate(attributes.get("y"))


def _with_position(node: dict[str, Any], x: float, y: float) -> dict[str, Any]:
    attributes = dict(node.get("attributes") or {})
    attributes["x"] = x
    attributes["y"] = y
    return {**node, "attributes": attributes}


def populate_coordinates_with_layout(
    graph_data: dict[str, Any],
    layout_type: str = "random",
    seed: int | None = None,
) -> dict[str, Any]:
    """Assign coordinates to every node lacking them.

    Args:
        graph_data: Worker payload.
        layout_type: ``"random"``, ``"circle"`` or ``"grid"``.
        seed: Seed for the random layout; the same seed and payload always
            give the same coordinates. None seeds from the clock.

    Returns:
        A new payload; *graph_data* is not modified.

    Raises:
        InvalidInputError: If *layout_type* is unknown.
    """
    if layout_type not in LAYOUT_TYPES:
        raise InvalidInputError(
            f"Unknown layout type: {layout_type!r}. Choose from: {', '.join(LAYOUT_TYPES)}"
        )
    if seed is None:
        seed = int(time.time() * 1000)

    nodes = graph_data.get("nodes") or []
    node_count = len(nodes)
    random = _seeded_random(seed)
    cols = math.ceil(math.sqrt(node_count)) if node_count else 0

    placed: list[dict[str, Any]] = []
    for index, node in enumerate(nodes):
        if has_coordinates(node):
            placed.append(node)
            continue

        if layout_type == "circle":
            angle = 2 * math.pi * index / node_count
            x = CIRCLE_RADIUS * math.cos(angle)
            y = CIRCLE_RADIUS * math.sin(angle)
        elif layout_type == "grid":
            row, col = divmod(index, cols)
            x = (col - cols / 2) * GRID_SPACING
            y = (row - cols / 2) * GRID_SPACING
        else:
            x = random() * COORDINATE_SPREAD - COORDINATE_SPREAD / 2
            y = random() * COORDINATE_SPREAD - COORDINATE_SPREAD / 2
        placed.append(_with_position(node, x, y))

    return {**graph_data, "nodes": placed}


def populate_coordinates(graph_data: dict[str, Any]) -> dict[str, Any]:
    """Random coordinates for nodes lacking them, seeded from the clock."""
    return populate_coordinates_with_layout(graph_data, "random", seed=None)


def populate_coordinates_batch(graph_data_list: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [populate_coordinates(graph_data) for graph_data in graph_data_list]


# ── force-directed refinement ───────────────────────────────


class ForceLayoutRunner:
    """ForceAtlas2-style refinement on a background thread.

    Repulsion between every pair of nodes scales with ``scaling_ratio``,
    edges attract linearly, and ``gravity`` pulls nodes toward the origin.
    The runner stops after ``iterations`` rounds, after ``duration``
    seconds, or when cancelled, whichever comes first.  Nodes without
    coordinates are seeded with the random layout first.

    Example:
        >>> with ForceLayoutRunner(payload, duration=2.0) as runner:
        ...     runner.wait()
        >>> refined = runner.result()
    """

    def __init__(
        self,
        graph_data: dict[str, Any],
        iterations: int = 100,
        duration: float | None = None,
        gravity: float = 1.0,
        scaling_ratio: float = 10.0,
        seed: int | None = 0,
    ) -> None:
        if iterations < 0:
            raise InvalidInputError("iterations must be non-negative")
        if duration is not None and duration <= 0:
            raise InvalidInputError("duration must be positive or None")

        self._graph_data = populate_coordinates_with_layout(graph_data, "random", seed=seed)
        self._iterations = iterations
        self._duration = duration
        self._gravity = gravity
        self._scaling_ratio = scaling_ratio

        self._positions: dict[Any, list[float]] = {
            node["key"]: [node["attributes"]["x"], node["attributes"]["y"]]
            for node in self._graph_data["nodes"]
        }
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._released = False
        self.iterations_done = 0

    # ── lifecycle ──────────────────────────────────────────

    def start(self) -> ForceLayoutRunner:
        if self._thread is not None:
            raise RuntimeError("ForceLayoutRunner already started")
        self._thread = threading.Thread(target=self._run, name="force-layout", daemon=True)
        self._thread.start()
        return self

    def cancel(self) -> None:
        """Stop refinement and join the worker thread."""
        self._cancel.set()
        self.wait()

    def wait(self, timeout: float | None = None) -> bool:
        """Join the worker thread. Returns True once it has exited."""
        if self._thread is None:
            self._released = True
            return True
        self._thread.join(timeout)
        if not self._thread.is_alive():
            self._released = True
        return self._released

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def released(self) -> bool:
        """True once the worker thread has been joined."""
        return self._released

    def result(self) -> dict[str, Any]:
        """Payload with the current positions (safe to call mid-run)."""
        with self._lock:
            positions = {key: tuple(pos) for key, pos in self._positions.items()}
        nodes = [
            _with_position(node, *positions[node["key"]]) for node in self._graph_data["nodes"]
        ]
        return {**self._graph_data, "nodes": nodes}

    def __enter__(self) -> ForceLayoutRunner:
        return self.start()

    def __exit__(self, *exc) -> None:
        self.cancel()

    # ── algorithm ─────────────────────────────────────────

    def _run(self) -> None:
        deadline = None if self._duration is None else time.monotonic() + self._duration
        keys = list(self._positions)
        edges = [
            (edge["source"], edge["target"])
            for edge in self._graph_data.get("edges", [])
            if edge["source"] in self._positions and edge["target"] in self._positions
        ]
        degree = {key: 0 for key in keys}
        for source, target in edges:
            degree[source] += 1
            degree[target] += 1

        try:
            for _ in range(self._iterations):
                if self._should_stop(deadline):
                    break
                if not self._step(keys, edges, degree, deadline):
                    break
                self.iterations_done += 1
        except Exception:
            logger.exception("Force layout failed after %d iterations", self.iterations_done)
        if deadline is not None and time.monotonic() >= deadline:
            logger.debug("Force layout stopped at its time limit")
        logger.debug("Force layout ran %d iterations", self.iterations_done)

    def _should_stop(self, deadline: float | None) -> bool:
        if self._cancel.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def _step(self, keys: list, edges: list[tuple], degree: dict, deadline: float | None) -> bool:
        """Apply one round of forces. Returns False if the round was abandoned.

        Cancellation and the deadline are checked per node of the pairwise
        pass; an abandoned round leaves positions untouched.
        """
        with self._lock:
            pos = {key: list(value) for key, value in self._positions.items()}

        force = {key: [0.0, 0.0] for key in keys}
        for i, a in enumerate(keys):
            if self._should_stop(deadline):
                return False
            ax, ay = pos[a]
            for b in keys[i + 1:]:
                dx = ax - pos[b][0]
                dy = ay - pos[b][1]
                dist_sq = dx * dx + dy * dy or 0.01
                factor = self._scaling_ratio * (degree[a] + 1) * (degree[b] + 1) / dist_sq
                force[a][0] += dx * factor
                force[a][1] += dy * factor
                force[b][0] -= dx * factor
                force[b][1] -= dy * factor

        for source, target in edges:
            dx = pos[source][0] - pos[target][0]
            dy = pos[source][1] - pos[target][1]
            force[source][0] -= dx
            force[source][1] -= dy
            force[target][0] += dx
            force[target][1] += dy

        for key in keys:
            x, y = pos[key]
            dist = math.hypot(x, y)
            if dist > 0:
                pull = self._gravity * (degree[key] + 1) / dist
                force[key][0] -= x * pull
                force[key][1] -= y * pull

        with self._lock:
            for key in keys:
                fx, fy = force[key]
                magnitude = math.hypot(fx, fy)
                # Cap each move so one iteration cannot fling a node away.
                scale = min(1.0, 10.0 / magnitude) if magnitude > 0 else 0.0
                self._positions[key][0] += fx * scale
                self._positions[key][1] += fy * scale
        return True


__all__ = [
    "populate_coordinates_with_layout",
    "populate_coordinates",
    "populate_coordinates_batch",
    "has_coordinates",
    "ForceLayoutRunner",
]
