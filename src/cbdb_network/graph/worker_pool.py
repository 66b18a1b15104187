"""Bounded worker pool for CPU-heavy graph tasks.

Tasks are looked up by name in a registry and run on a
``concurrent.futures`` executor (threads by default, processes on request)
so that metrics and layout never block the caller's thread.

Public API:
    WORKER_TASKS: Default task-name -> function registry.
    GraphWorkerPool: submit / exec / stats / close over the executor.
"""

from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import (
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
)
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable

from ..config import NetworkConfig
from ..exceptions import NetworkError, WorkerFailureError
from . import layout, metrics

logger = logging.getLogger(__name__)

WORKER_TASKS: dict[str, Callable[..., Any]] = {
    "calculate_all_metrics": metrics.calculate_all_metrics,
    "calculate_clustering_coefficient": metrics.calculate_clustering_coefficient,
    "calculate_degree_distribution": metrics.calculate_degree_distribution,
    "find_connected_components": metrics.find_connected_components,
    "calculate_betweenness_centrality": metrics.calculate_betweenness_centrality,
    "populate_coordinates": layout.populate_coordinates,
    "populate_coordinates_batch": layout.populate_coordinates_batch,
    "populate_coordinates_with_layout": layout.populate_coordinates_with_layout,
}

_UNSET = object()


class GraphWorkerPool:
    """Pool of graph workers addressed by task name.

    Args:
        config: Pool size, worker kind and default task timeout.
        tasks: Extra task-name -> function entries merged over
            WORKER_TASKS.  With ``worker_kind="process"`` they must be
            importable module-level functions.

    Example:
        >>> with GraphWorkerPool() as pool:
        ...     stats = pool.exec("calculate_all_metrics", payload)
    """

    def __init__(
        self,
        config: NetworkConfig | None = None,
        tasks: dict[str, Callable[..., Any]] | None = None,
    ) -> None:
        self._config = config or NetworkConfig()
        self._tasks = dict(WORKER_TASKS)
        if tasks:
            self._tasks.update(tasks)

        self._executor: Executor
        if self._config.worker_kind == "process":
            self._executor = ProcessPoolExecutor(max_workers=self._config.max_workers)
        else:
            self._executor = ThreadPoolExecutor(
                max_workers=self._config.max_workers,
                thread_name_prefix="graph-worker",
            )

        self._lock = threading.Lock()
        self._closed = False
        self._pending: set[Future] = set()
        self._counters = {"submitted": 0, "completed": 0, "failed": 0, "timed_out": 0}

    @property
    def task_names(self) -> list[str]:
        return sorted(self._tasks)

    # ── task execution ────────────────────────────────────

    def submit(self, task_name: str, *args: Any) -> Future:
        """Queue *task_name* with *args* and return its future.

        Raises:
            KeyError: If *task_name* is not registered.
            RuntimeError: If the pool is closed.
        """
        if task_name not in self._tasks:
            raise KeyError(f"Unknown worker task: {task_name!r}")

        with self._lock:
            if self._closed:
                raise RuntimeError("GraphWorkerPool is closed")
            future = self._executor.submit(self._tasks[task_name], *args)
            self._counters["submitted"] += 1
            self._pending.add(future)
        # Registered outside the lock: an already-finished future runs the
        # callback on this thread.
        future.add_done_callback(self._settle)
        return future

    def exec(self, task_name: str, *args: Any, timeout: Any = _UNSET) -> Any:
        """Run *task_name* and wait for its result.

        Args:
            task_name: Registered task name.
            *args: Positional arguments for the task.
            timeout: Seconds to wait; defaults to ``config.task_timeout``.

        Raises:
            WorkerFailureError: The task crashed or timed out.
            NetworkError: Library errors raised by the task (for example
                MalformedGraphError) propagate unchanged.
        """
        if timeout is _UNSET:
            timeout = self._config.task_timeout
        future = self.submit(task_name, *args)
        return self.wait_for(task_name, future, timeout)

    def wait_for(self, task_name: str, future: Future, timeout: float | None = None) -> Any:
        """Resolve a future from :meth:`submit` with the pool's error mapping."""
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            with self._lock:
                self._counters["timed_out"] += 1
            logger.warning("Worker task %s timed out after %ss", task_name, timeout)
            raise WorkerFailureError(
                f"Task {task_name} timed out after {timeout}s", task=task_name
            ) from None
        except NetworkError:
            raise
        except Exception as exc:
            logger.warning("Worker task %s failed: %s", task_name, exc)
            raise WorkerFailureError(f"Task {task_name} failed: {exc}", task=task_name) from exc

    def _settle(self, future: Future) -> None:
        """Count a finished future once and drop it from the pending set."""
        with self._lock:
            self._settle_locked(future)

    def _settle_locked(self, future: Future) -> None:
        if future not in self._pending:
            return
        self._pending.discard(future)
        if future.cancelled() or future.exception() is not None:
            self._counters["failed"] += 1
        else:
            self._counters["completed"] += 1

    # ── composite operations ───────────────────────────────

    def calculate_metrics_parallel(self, graph_data: dict[str, Any]) -> dict[str, Any]:
        """Compute all metrics with one pool task per expensive metric.

        Node/edge counts, density and average degree are computed on the
        caller's thread; clustering, degree distribution and components run
        concurrently and are merged into the calculate_all_metrics shape.
        """
        graph = metrics.build_graph(graph_data)
        node_count = graph.number_of_nodes()
        edge_count = graph.number_of_edges()

        timeout = self._config.task_timeout
        pending = {
            name: self.submit(name, graph_data)
            for name in (
                "calculate_clustering_coefficient",
                "calculate_degree_distribution",
                "find_connected_components",
            )
        }
        results = {name: self.wait_for(name, fut, timeout) for name, fut in pending.items()}
        components = results["find_connected_components"]

        return {
            "nodeCount": node_count,
            "edgeCount": edge_count,
            "density": metrics.calculate_density(node_count, edge_count),
            "avgDegree": metrics.calculate_avg_degree(node_count, edge_count),
            "clusteringCoefficient": results["calculate_clustering_coefficient"],
            "degreeDistribution": results["calculate_degree_distribution"],
            "componentCount": len(components),
            "largestComponentSize": max(components, default=0),
            "isConnected": len(components) == 1,
        }

    def top_central_nodes(
        self,
        graph_data: dict[str, Any],
        top_n: int = 10,
        sample_size: int = 100,
        seed: int | None = None,
    ) -> list[tuple[Any, int]]:
        """Highest-centrality nodes, scored on at most *sample_size* nodes.

        Scores come from calculate_betweenness_centrality, which is a
        degree-based approximation.
        """
        keys = [node["key"] for node in graph_data.get("nodes", [])]
        sample = None
        if len(keys) > sample_size:
            sample = random.Random(seed).sample(keys, sample_size)

        scores = self.exec("calculate_betweenness_centrality", graph_data, sample)
        ranked = sorted(scores, key=lambda item: item[1], reverse=True)
        return ranked[:top_n]

    # ── lifecycle ──────────────────────────────────────────

    def stats(self) -> dict[str, Any]:
        with self._lock:
            # Futures can report done a moment before their callback runs.
            for future in [f for f in self._pending if f.done()]:
                self._settle_locked(future)
            return {
                "worker_kind": self._config.worker_kind,
                "max_workers": self._config.max_workers,
                "closed": self._closed,
                "active": len(self._pending),
                **self._counters,
            }

    def close(self, wait: bool = True) -> None:
        """Shut down the executor; pending tasks are cancelled."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
        logger.debug("GraphWorkerPool closed: %s", self._counters)

    def __enter__(self) -> GraphWorkerPool:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


__all__ = ["GraphWorkerPool", "WORKER_TASKS"]
