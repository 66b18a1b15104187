"""InMemoryRelationStore -- dict-based RelationStore for tests and fixtures.

Holds the same shape of data as the CBDB tables (persons, kinship,
associations, office postings, alternative names, biographical texts) in
plain Python containers.  Thread-safe via a reentrant lock.

Public API:
    InMemoryRelationStore: Concrete RelationStore backed by dicts.
"""

from __future__ import annotations

import threading
from typing import Any

from ..exceptions import StoreUnavailableError
from ..graph.types import PersonNode, PersonRecord, RelationEdge, RelationType
from .protocol import RELATION_COUNT_FIELDS


class InMemoryRelationStore:
    """Dict-based RelationStore.

    Besides the protocol methods it exposes fixture builders
    (``add_person``, ``add_kinship`` ...), a ``query_count`` counter that
    increments once per simulated store query, and ``set_available`` to
    simulate an unreachable store.

    Args:
        store_id: Human-readable identifier for this store instance.
    """

    def __init__(self, store_id: str = "in_memory") -> None:
        self._store_id = store_id
        self._persons: dict[int, dict[str, Any]] = {}
        # (source, target, code) triples per relation family
        self._kinship: list[tuple[int, int, int]] = []
        self._associations: list[tuple[int, int, int]] = []
        self._kinship_codes: dict[int, str] = {}
        self._association_codes: dict[int, str] = {}
        self._postings: list[tuple[int, int]] = []  # (person_id, office_id)
        self._offices: dict[int, str] = {}
        self._altnames: list[tuple[int, str, str]] = []
        self._texts: list[tuple[int, int]] = []  # (person_id, text_id)
        self._available = True
        self._closed = False
        self._lock = threading.RLock()
        self.query_count = 0

    @property
    def store_id(self) -> str:
        return self._store_id

    # ── fixture builders ─────────────────────────────────────

    def add_person(
        self,
        person_id: int,
        name: str = "",
        name_chn: str = "",
        birth_year: int | None = None,
        death_year: int | None = None,
        index_year: int | None = None,
        dynasty_code: int | None = None,
    ) -> None:
        with self._lock:
            self._persons[person_id] = {
                "name": name,
                "name_chn": name_chn,
                "birth_year": birth_year,
                "death_year": death_year,
                "index_year": index_year,
                "dynasty_code": dynasty_code,
            }

    def add_kinship(self, person_id: int, kin_id: int, code: int = 0, label: str | None = None) -> None:
        with self._lock:
            self._kinship.append((person_id, kin_id, code))
            if label is not None:
                self._kinship_codes[code] = label

    def add_association(self, person_id: int, assoc_id: int, code: int = 0, label: str | None = None) -> None:
        with self._lock:
            self._associations.append((person_id, assoc_id, code))
            if label is not None:
                self._association_codes[code] = label

    def add_office(self, office_id: int, name: str) -> None:
        with self._lock:
            self._offices[office_id] = name

    def add_posting(self, person_id: int, office_id: int) -> None:
        with self._lock:
            self._postings.append((person_id, office_id))

    def add_alt_name(self, person_id: int, alt_name: str = "", alt_name_chn: str = "") -> None:
        with self._lock:
            self._altnames.append((person_id, alt_name, alt_name_chn))

    def add_text(self, person_id: int, text_id: int = 0) -> None:
        with self._lock:
            self._texts.append((person_id, text_id))

    def text_ids(self, person_id: int) -> list[int]:
        with self._lock:
            return [tid for pid, tid in self._texts if pid == person_id]

    def set_available(self, available: bool) -> None:
        """Toggle simulated reachability of the store."""
        self._available = available

    # ── graph data ───────────────────────────────────────────

    def find_edges(
        self,
        person_ids: list[int],
        relation_types: list[RelationType],
    ) -> list[RelationEdge]:
        wanted = set(person_ids)
        edges: list[RelationEdge] = []
        with self._lock:
            for rtype in relation_types:
                self._begin_query()
                if rtype is RelationType.KINSHIP:
                    edges.extend(
                        self._pair_edges(self._kinship, self._kinship_codes, wanted, rtype, "Kinship")
                    )
                elif rtype is RelationType.ASSOCIATION:
                    edges.extend(
                        self._pair_edges(
                            self._associations, self._association_codes, wanted, rtype, "Association",
                        )
                    )
                elif rtype is RelationType.OFFICE:
                    edges.extend(self._office_edges(wanted))
        return edges

    def find_nodes(self, person_ids: list[int]) -> list[PersonNode]:
        with self._lock:
            self._begin_query()
            nodes: list[PersonNode] = []
            for pid in dict.fromkeys(person_ids):
                row = self._persons.get(pid)
                if row is None:
                    continue
                nodes.append(_row_to_node(pid, row))
        return nodes

    # ── search ───────────────────────────────────────────────

    def find_by_name(
        self,
        query: str,
        accurate: bool = False,
        start: int = 0,
        limit: int = 20,
    ) -> tuple[list[PersonRecord], int]:
        with self._lock:
            self._begin_query()
            priorities: dict[int, int] = {}
            for pid, row in self._persons.items():
                if _name_matches(query, accurate, row["name"], row["name_chn"]):
                    priorities[pid] = 1
            for pid, alt_name, alt_name_chn in self._altnames:
                if pid in priorities:
                    continue
                if _name_matches(query, accurate, alt_name, alt_name_chn):
                    priorities[pid] = 2

            ordered = sorted(priorities, key=lambda pid: (priorities[pid], pid))
            page = ordered[start:start + limit]
            records = [
                _row_to_record(pid, self._persons.get(pid, {}))
                for pid in page
            ]
        return records, len(ordered)

    def count_relations_batch(self, person_ids: list[int]) -> dict[int, dict[str, int]]:
        with self._lock:
            self._begin_query()
            counts = {pid: dict.fromkeys(RELATION_COUNT_FIELDS, 0) for pid in person_ids}
            for source, _target, _code in self._kinship:
                if source in counts:
                    counts[source]["kinship"] += 1
            for source, target, _code in self._associations:
                # Associations count in both directions.
                if source in counts:
                    counts[source]["association"] += 1
                if target in counts and target != source:
                    counts[target]["association"] += 1
            for pid, _office in self._postings:
                if pid in counts:
                    counts[pid]["office"] += 1
            for pid, _text_id in self._texts:
                if pid in counts:
                    counts[pid]["text"] += 1
            for pid, _name, _name_chn in self._altnames:
                if pid in counts:
                    counts[pid]["altname"] += 1
        return counts

    # ── lifecycle ────────────────────────────────────────────

    def close(self) -> None:
        self._closed = True

    # ── private helpers ──────────────────────────────────────

    def _begin_query(self) -> None:
        if self._closed:
            raise StoreUnavailableError(f"Store {self._store_id} is closed")
        if not self._available:
            raise StoreUnavailableError(f"Store {self._store_id} is unreachable")
        self.query_count += 1

    @staticmethod
    def _pair_edges(
        rows: list[tuple[int, int, int]],
        code_labels: dict[int, str],
        wanted: set[int],
        rtype: RelationType,
        fallback_label: str,
    ) -> list[RelationEdge]:
        edges: list[RelationEdge] = []
        for source, target, code in rows:
            if source in wanted or target in wanted:
                edges.append(RelationEdge(
                    source=source,
                    target=target,
                    edge_type=rtype,
                    edge_code=code,
                    label=code_labels.get(code) or fallback_label,
                ))
        return edges

    def _office_edges(self, wanted: set[int]) -> list[RelationEdge]:
        holders: dict[int, list[int]] = {}
        for pid, office_id in self._postings:
            bucket = holders.setdefault(office_id, [])
            if pid not in bucket:
                bucket.append(pid)

        edges: list[RelationEdge] = []
        seen: set[tuple[int, int, int]] = set()
        for office_id, persons in holders.items():
            for pid in persons:
                if pid not in wanted:
                    continue
                for colleague in persons:
                    if colleague == pid or (pid, colleague, office_id) in seen:
                        continue
                    seen.add((pid, colleague, office_id))
                    edges.append(RelationEdge(
                        source=pid,
                        target=colleague,
                        edge_type=RelationType.OFFICE,
                        edge_code=office_id,
                        label=self._offices.get(office_id) or "Office",
                    ))
        return edges


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _name_matches(query: str, accurate: bool, *names: str) -> bool:
    if accurate:
        return any(n == query for n in names if n)
    q_lower = query.lower()
    return any(q_lower in n.lower() for n in names if n)


def _row_to_node(person_id: int, row: dict[str, Any]) -> PersonNode:
    attributes = {
        "name": row.get("name") or "",
        "name_chn": row.get("name_chn") or "",
    }
    for key in ("dynasty_code", "birth_year", "death_year"):
        if row.get(key) is not None:
            attributes[key] = row[key]
    return PersonNode(
        person_id=person_id,
        label=row.get("name_chn") or row.get("name") or f"Person {person_id}",
        attributes=attributes,
    )


def _row_to_record(person_id: int, row: dict[str, Any]) -> PersonRecord:
    return PersonRecord(
        person_id=person_id,
        name=row.get("name") or "",
        name_chn=row.get("name_chn") or "",
        birth_year=row.get("birth_year"),
        death_year=row.get("death_year"),
        index_year=row.get("index_year"),
        dynasty_code=row.get("dynasty_code"),
    )


__all__ = ["InMemoryRelationStore"]
