"""Runtime configuration for network assembly and the worker pool."""

from dataclasses import dataclass

LAYOUT_TYPES = ("random", "circle", "grid")
WORKER_KINDS = ("thread", "process")


@dataclass(frozen=True)
class NetworkConfig:
    """Limits and pool settings shared by the network services.

    Attributes:
        max_depth: Largest BFS depth a caller may request
        max_nodes: Node ceiling for one assembled network (expansion stops
            admitting nodes once reached and flags the snapshot truncated)
        max_workers: Worker pool size
        worker_kind: "thread" or "process"
        task_timeout: Seconds to wait for a single pool task (None = forever)
        max_search_limit: Largest page size for name search
        default_layout: Layout used when a caller does not pick one
    """

    max_depth: int = 6
    max_nodes: int = 5000
    max_workers: int = 4
    worker_kind: str = "thread"
    task_timeout: float | None = 30.0
    max_search_limit: int = 500
    default_layout: str = "random"

    def __post_init__(self):
        """Validate configuration values."""
        if not isinstance(self.max_depth, int) or self.max_depth < 0:
            raise ValueError("max_depth must be a non-negative integer")

        if not isinstance(self.max_nodes, int) or self.max_nodes <= 0:
            raise ValueError("max_nodes must be positive integer")

        if not isinstance(self.max_workers, int) or self.max_workers <= 0:
            raise ValueError("max_workers must be positive integer")

        if self.worker_kind not in WORKER_KINDS:
            raise ValueError(f"worker_kind must be one of {WORKER_KINDS}")

        if self.task_timeout is not None and self.task_timeout <= 0:
            raise ValueError("task_timeout must be positive or None")

        if not isinstance(self.max_search_limit, int) or self.max_search_limit <= 0:
            raise ValueError("max_search_limit must be positive integer")

        if self.default_layout not in LAYOUT_TYPES:
            raise ValueError(f"default_layout must be one of {LAYOUT_TYPES}")


__all__ = ["NetworkConfig", "LAYOUT_TYPES", "WORKER_KINDS"]
