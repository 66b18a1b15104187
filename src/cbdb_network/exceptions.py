"""Custom exceptions for cbdb-network-lib.

Every error carries a ``kind`` string and a ``retryable`` flag so callers
can tell transient failures (store down, worker crashed) from permanent
ones (bad input, malformed graph).
"""


class NetworkError(Exception):
    """Base exception for network operations."""

    kind = "network_error"
    retryable = False

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": str(self), "retryable": self.retryable}


class StoreUnavailableError(NetworkError):
    """Raised when the relational store cannot be reached or queried."""

    kind = "store_unavailable"
    retryable = True


class InvalidInputError(NetworkError):
    """Raised when a request is rejected before any I/O."""

    kind = "invalid_input"


class MalformedGraphError(NetworkError):
    """Raised when an edge references a node absent from the node set."""

    kind = "malformed_graph"


class WorkerFailureError(NetworkError):
    """Raised when a pool task crashes or times out."""

    kind = "worker_failure"
    retryable = True

    def __init__(self, message: str, task: str = ""):
        super().__init__(message)
        self.task = task

    def __reduce__(self):
        return (self.__class__, (str(self), self.task))


class RequestSupersededError(NetworkError):
    """Raised when a search result is requested for a superseded query."""

    kind = "request_superseded"
