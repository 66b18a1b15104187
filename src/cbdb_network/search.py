"""Person name search with optional connectivity ranking.

Public API:
    IMPORTANCE_WEIGHTS: Relation family -> score weight.
    importance_score: Weighted score from one person's relation counts.
    PersonSearchService: search_by_name over a RelationStore.
    SupersedingSearch: Latest-request-wins gate for interactive search.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .config import NetworkConfig
from .exceptions import InvalidInputError, RequestSupersededError, StoreUnavailableError
from .graph.types import PersonRecord, SearchResult

if TYPE_CHECKING:
    from .stores.protocol import RelationStore

logger = logging.getLogger(__name__)

# Associations weigh most; alternative names barely count.
IMPORTANCE_WEIGHTS = {
    "kinship": 2.0,
    "association": 3.0,
    "office": 2.0,
    "text": 1.5,
    "altname": 0.1,
}


def importance_score(counts: dict[str, int]) -> float:
    return sum(weight * counts.get(field, 0) for field, weight in IMPORTANCE_WEIGHTS.items())


class PersonSearchService:
    """Name search with an importance re-sort.

    Args:
        store: RelationStore providing find_by_name and relation counts.
        config: Supplies the largest allowed page size.
    """

    def __init__(self, store: RelationStore, config: NetworkConfig | None = None) -> None:
        self._store = store
        self._config = config or NetworkConfig()

    def search_by_name(
        self,
        query: str,
        accurate: bool = False,
        start: int = 0,
        limit: int = 20,
        sort_by_importance: bool = False,
    ) -> SearchResult:
        """Search primary and alternative names.

        Args:
            query: Name fragment (or exact name when *accurate*).
            accurate: Exact match instead of substring match.
            start: Offset of the page.
            limit: Page size.
            sort_by_importance: Re-order the page by connectivity.  The
                page membership and ``total`` are identical to the
                unsorted call; ties keep match order.

        Raises:
            InvalidInputError: Empty query or bad pagination.
            StoreUnavailableError: Store failure (never an empty success).
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Search query must be a non-empty string")
        if isinstance(start, bool) or not isinstance(start, int) or start < 0:
            raise InvalidInputError(f"start must be a non-negative integer: {start!r}")
        if isinstance(limit, bool) or not isinstance(limit, int) or not (
            1 <= limit <= self._config.max_search_limit
        ):
            raise InvalidInputError(
                f"limit must be between 1 and {self._config.max_search_limit}: {limit!r}"
            )

        query = query.strip()
        try:
            records, total = self._store.find_by_name(query, accurate=accurate, start=start, limit=limit)
        except StoreUnavailableError:
            logger.error("Name search failed for %r", query)
            raise

        if sort_by_importance and len(records) > 1:
            records = self._sort_by_importance(records)

        logger.debug(
            "Search %r: %d of %d (sorted=%s)", query, len(records), total, sort_by_importance,
        )
        return SearchResult(data=records, total=total)

    def importance_scores(self, person_ids: list[int]) -> dict[int, float]:
        """Importance score per id from a single batched count query."""
        if not person_ids:
            return {}
        counts = self._store.count_relations_batch(list(person_ids))
        return {pid: importance_score(counts.get(pid, {})) for pid in person_ids}

    def _sort_by_importance(self, records: list[PersonRecord]) -> list[PersonRecord]:
        scores = self.importance_scores([r.person_id for r in records])
        # sorted() is stable, so equal scores keep match order.
        return sorted(records, key=lambda r: scores[r.person_id], reverse=True)


# ── superseding search ────────────────────────────────────


@dataclass(frozen=True)
class SearchHandle:
    """Ticket for one submitted search."""

    generation: int
    query: str
    future: Future
    gate: SupersedingSearch

    @property
    def is_current(self) -> bool:
        return self.gate.latest_generation == self.generation

    def result(self, timeout: float | None = None) -> SearchResult:
        """Return the result if this is still the latest request.

        Raises:
            RequestSupersededError: A newer search was submitted.
        """
        if not self.is_current:
            raise RequestSupersededError(f"Search {self.query!r} was superseded")
        try:
            result = self.future.result(timeout=timeout)
        except CancelledError:
            raise RequestSupersededError(f"Search {self.query!r} was superseded") from None
        # A newer request may have arrived while this one was running.
        if not self.is_current:
            raise RequestSupersededError(f"Search {self.query!r} was superseded")
        return result


class SupersedingSearch:
    """Only the most recently submitted search is honoured.

    Submitting a new query cancels the previous one if it has not started;
    if it has, its result is discarded when read.

    Args:
        service: Search service executing the queries.
        max_workers: Threads running searches in the background.
    """

    def __init__(self, service: PersonSearchService, max_workers: int = 2) -> None:
        self._service = service
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="search")
        self._lock = threading.Lock()
        self._generation = 0
        self._current: SearchHandle | None = None

    @property
    def latest_generation(self) -> int:
        with self._lock:
            return self._generation

    def submit(self, query: str, **options: Any) -> SearchHandle:
        """Start a search, superseding any earlier one."""
        with self._lock:
            self._generation += 1
            previous = self._current
            future = self._executor.submit(self._service.search_by_name, query, **options)
            handle = SearchHandle(self._generation, query, future, self)
            self._current = handle

        if previous is not None and not previous.future.done():
            if previous.future.cancel():
                logger.debug("Cancelled superseded search %r", previous.query)
        return handle

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self) -> SupersedingSearch:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


__all__ = [
    "IMPORTANCE_WEIGHTS",
    "importance_score",
    "PersonSearchService",
    "SearchHandle",
    "SupersedingSearch",
]
