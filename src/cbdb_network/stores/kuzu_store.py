"""KuzuRelationStore -- Kuzu-backed implementation of the RelationStore protocol.

Holds CBDB persons as a property graph: ``Person`` nodes joined by
``KINSHIP`` / ``ASSOCIATION`` rels, ``POSTED_TO`` rels into ``Office``
nodes (colleague edges are derived through shared offices), and
``HAS_ALTNAME`` / ``HAS_TEXT`` rels for search and importance counts.
All Cypher queries use parameterised bindings.

Public API:
    KuzuRelationStore: Concrete RelationStore backed by Kuzu.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any

import kuzu

from ..exceptions import StoreUnavailableError
from ..graph.types import PersonNode, PersonRecord, RelationEdge, RelationType
from .protocol import RELATION_COUNT_FIELDS

logger = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE NODE TABLE IF NOT EXISTS Person("
    "person_id INT64, name STRING, name_chn STRING, birth_year INT64, "
    "death_year INT64, index_year INT64, dynasty_code INT64, PRIMARY KEY(person_id))",
    "CREATE NODE TABLE IF NOT EXISTS Office(office_id INT64, name STRING, PRIMARY KEY(office_id))",
    "CREATE NODE TABLE IF NOT EXISTS AltName("
    "alt_id STRING, name STRING, name_chn STRING, PRIMARY KEY(alt_id))",
    "CREATE NODE TABLE IF NOT EXISTS BiogText(text_key STRING, text_id INT64, PRIMARY KEY(text_key))",
    "CREATE REL TABLE IF NOT EXISTS KINSHIP(FROM Person TO Person, code INT64, label STRING)",
    "CREATE REL TABLE IF NOT EXISTS ASSOCIATION(FROM Person TO Person, code INT64, label STRING)",
    "CREATE REL TABLE IF NOT EXISTS POSTED_TO(FROM Person TO Office)",
    "CREATE REL TABLE IF NOT EXISTS HAS_ALTNAME(FROM Person TO AltName)",
    "CREATE REL TABLE IF NOT EXISTS HAS_TEXT(FROM Person TO BiogText)",
)

# Relation-count field -> MATCH pattern anchored on (p:Person).
_COUNT_PATTERNS = {
    "kinship": "(p:Person)-[r:KINSHIP]->(:Person)",
    "association": "(p:Person)-[r:ASSOCIATION]-(:Person)",
    "office": "(p:Person)-[r:POSTED_TO]->(:Office)",
    "text": "(p:Person)-[r:HAS_TEXT]->(:BiogText)",
    "altname": "(p:Person)-[r:HAS_ALTNAME]->(:AltName)",
}


class KuzuRelationStore:
    """Kuzu graph database implementation of the RelationStore protocol.

    Args:
        db_path: Filesystem path for the Kuzu database directory.
        store_id: Optional human-readable identifier; auto-generated if None.
    """

    # ── construction / lifecycle ──────────────────────────────

    def __init__(self, db_path: Path | str, store_id: str | None = None) -> None:
        self._db_path = Path(db_path)
        self._store_id = store_id or f"kuzu-{uuid.uuid4().hex[:8]}"
        try:
            self._db = kuzu.Database(str(self._db_path))
            self._conn = kuzu.Connection(self._db)
            for ddl in _SCHEMA:
                self._conn.execute(ddl)
        except RuntimeError as e:
            logger.error("Failed to open Kuzu relation store %s: %s", self._db_path, e)
            raise StoreUnavailableError(f"Cannot open Kuzu database {self._db_path}: {e}") from e

    @property
    def store_id(self) -> str:
        return self._store_id

    def close(self) -> None:
        """Release Kuzu resources."""
        self._conn = None  # type: ignore[assignment]
        self._db = None  # type: ignore[assignment]

    # ── fixture builders ──────────────────────────────────────

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
        """Create or update a Person node."""
        set_parts = ["p.name = $name", "p.name_chn = $name_chn"]
        params: dict[str, Any] = {"pid": person_id, "name": name, "name_chn": name_chn}
        # Only bind non-null optionals so Kuzu can infer parameter types.
        for key, value in (
            ("birth_year", birth_year),
            ("death_year", death_year),
            ("index_year", index_year),
            ("dynasty_code", dynasty_code),
        ):
            if value is not None:
                set_parts.append(f"p.{key} = ${key}")
                params[key] = value
        self._run(
            f"MERGE (p:Person {{person_id: $pid}}) SET {', '.join(set_parts)}",
            params,
        )

    def add_kinship(self, person_id: int, kin_id: int, code: int = 0, label: str | None = None) -> None:
        self._add_pair("KINSHIP", person_id, kin_id, code, label or "")

    def add_association(self, person_id: int, assoc_id: int, code: int = 0, label: str | None = None) -> None:
        self._add_pair("ASSOCIATION", person_id, assoc_id, code, label or "")

    def add_office(self, office_id: int, name: str) -> None:
        self._run(
            "MERGE (o:Office {office_id: $oid}) SET o.name = $name",
            {"oid": office_id, "name": name},
        )

    def add_posting(self, person_id: int, office_id: int) -> None:
        self._ensure_person(person_id)
        self._run("MERGE (o:Office {office_id: $oid})", {"oid": office_id})
        self._run(
            "MATCH (p:Person), (o:Office) WHERE p.person_id = $pid AND o.office_id = $oid "
            "CREATE (p)-[:POSTED_TO]->(o)",
            {"pid": person_id, "oid": office_id},
        )

    def add_alt_name(self, person_id: int, alt_name: str = "", alt_name_chn: str = "") -> None:
        self._ensure_person(person_id)
        alt_id = uuid.uuid4().hex
        self._run(
            "CREATE (:AltName {alt_id: $aid, name: $name, name_chn: $name_chn})",
            {"aid": alt_id, "name": alt_name, "name_chn": alt_name_chn},
        )
        self._run(
            "MATCH (p:Person), (a:AltName) WHERE p.person_id = $pid AND a.alt_id = $aid "
            "CREATE (p)-[:HAS_ALTNAME]->(a)",
            {"pid": person_id, "aid": alt_id},
        )

    def add_text(self, person_id: int, text_id: int = 0) -> None:
        self._ensure_person(person_id)
        text_key = uuid.uuid4().hex
        self._run(
            "CREATE (:BiogText {text_key: $tk, text_id: $tid})",
            {"tk": text_key, "tid": text_id},
        )
        self._run(
            "MATCH (p:Person), (t:BiogText) WHERE p.person_id = $pid AND t.text_key = $tk "
            "CREATE (p)-[:HAS_TEXT]->(t)",
            {"pid": person_id, "tk": text_key},
        )

    # ── graph data ────────────────────────────────────────────

    def find_edges(
        self,
        person_ids: list[int],
        relation_types: list[RelationType],
    ) -> list[RelationEdge]:
        """Fetch edges touching *person_ids*, one query per relation type."""
        ids = list(dict.fromkeys(person_ids))
        edges: list[RelationEdge] = []

        for rtype, rel_name, fallback in (
            (RelationType.KINSHIP, "KINSHIP", "Kinship"),
            (RelationType.ASSOCIATION, "ASSOCIATION", "Association"),
        ):
            if rtype not in relation_types:
                continue
            rows = self._rows(
                f"MATCH (a:Person)-[r:{rel_name}]->(b:Person) "
                f"WHERE a.person_id IN $ids OR b.person_id IN $ids "
                f"RETURN a.person_id, b.person_id, r.code, r.label",
                {"ids": ids},
            )
            for source, target, code, label in rows:
                edges.append(RelationEdge(
                    source=source,
                    target=target,
                    edge_type=rtype,
                    edge_code=code or 0,
                    label=label or fallback,
                ))

        if RelationType.OFFICE in relation_types:
            rows = self._rows(
                "MATCH (a:Person)-[:POSTED_TO]->(o:Office)<-[:POSTED_TO]-(b:Person) "
                "WHERE a.person_id IN $ids AND a.person_id <> b.person_id "
                "RETURN DISTINCT a.person_id, b.person_id, o.office_id, o.name",
                {"ids": ids},
            )
            for source, target, office_id, name in rows:
                edges.append(RelationEdge(
                    source=source,
                    target=target,
                    edge_type=RelationType.OFFICE,
                    edge_code=office_id or 0,
                    label=name or "Office",
                ))

        return edges

    def find_nodes(self, person_ids: list[int]) -> list[PersonNode]:
        ids = list(dict.fromkeys(person_ids))
        by_id = {record.person_id: record for record in self._records(ids)}
        nodes: list[PersonNode] = []
        for pid in ids:
            record = by_id.get(pid)
            if record is None:
                continue
            attributes: dict[str, Any] = {"name": record.name, "name_chn": record.name_chn}
            for key in ("dynasty_code", "birth_year", "death_year"):
                value = getattr(record, key)
                if value is not None:
                    attributes[key] = value
            nodes.append(PersonNode(person_id=pid, label=record.display_name, attributes=attributes))
        return nodes

    # ── search ────────────────────────────────────────────────

    def find_by_name(
        self,
        query: str,
        accurate: bool = False,
        start: int = 0,
        limit: int = 20,
    ) -> tuple[list[PersonRecord], int]:
        if accurate:
            cond = "({v}.name = $q OR {v}.name_chn = $q)"
            params = {"q": query}
        else:
            cond = "(lower({v}.name) CONTAINS $q OR lower({v}.name_chn) CONTAINS $q)"
            params = {"q": query.lower()}

        priorities: dict[int, int] = {}
        for (pid,) in self._rows(
            f"MATCH (p:Person) WHERE {cond.format(v='p')} RETURN p.person_id", params,
        ):
            priorities[pid] = 1
        for (pid,) in self._rows(
            f"MATCH (p:Person)-[:HAS_ALTNAME]->(a:AltName) WHERE {cond.format(v='a')} "
            f"RETURN DISTINCT p.person_id",
            params,
        ):
            priorities.setdefault(pid, 2)

        ordered = sorted(priorities, key=lambda pid: (priorities[pid], pid))
        page = ordered[start:start + limit]
        if not page:
            return [], len(ordered)

        by_id = {record.person_id: record for record in self._records(page)}
        return [by_id.get(pid, PersonRecord(person_id=pid)) for pid in page], len(ordered)

    def count_relations_batch(self, person_ids: list[int]) -> dict[int, dict[str, int]]:
        """Relation counts with one aggregate query per relation family."""
        ids = list(dict.fromkeys(person_ids))
        counts = {pid: dict.fromkeys(RELATION_COUNT_FIELDS, 0) for pid in person_ids}
        for field_name, pattern in _COUNT_PATTERNS.items():
            rows = self._rows(
                f"MATCH {pattern} WHERE p.person_id IN $ids RETURN p.person_id, count(r)",
                {"ids": ids},
            )
            for pid, n in rows:
                counts[pid][field_name] = int(n)
        return counts

    # ── private helpers ───────────────────────────────────────

    def _records(self, ids: list[int]) -> list[PersonRecord]:
        rows = self._rows(
            "MATCH (p:Person) WHERE p.person_id IN $ids "
            "RETURN p.person_id, p.name, p.name_chn, p.birth_year, p.death_year, "
            "p.index_year, p.dynasty_code",
            {"ids": ids},
        )
        return [
            PersonRecord(
                person_id=pid,
                name=name or "",
                name_chn=name_chn or "",
                birth_year=birth,
                death_year=death,
                index_year=index_year,
                dynasty_code=dynasty,
            )
            for pid, name, name_chn, birth, death, index_year, dynasty in rows
        ]

    def _ensure_person(self, person_id: int) -> None:
        self._run("MERGE (p:Person {person_id: $pid})", {"pid": person_id})

    def _add_pair(self, rel_name: str, source: int, target: int, code: int, label: str) -> None:
        self._ensure_person(source)
        self._ensure_person(target)
        self._run(
            f"MATCH (a:Person), (b:Person) WHERE a.person_id = $sid AND b.person_id = $tid "
            f"CREATE (a)-[:{rel_name} {{code: $code, label: $label}}]->(b)",
            {"sid": source, "tid": target, "code": code, "label": label},
        )

    def _run(self, cypher: str, params: dict[str, Any]) -> Any:
        if self._conn is None:
            raise StoreUnavailableError(f"Store {self._store_id} is closed")
        try:
            return self._conn.execute(cypher, params)
        except RuntimeError as e:
            logger.error("Kuzu query failed on %s: %s", self._db_path, e)
            raise StoreUnavailableError(f"Store {self._store_id} query failed: {e}") from e

    def _rows(self, cypher: str, params: dict[str, Any]) -> list[list[Any]]:
        result = self._run(cypher, params)
        rows: list[list[Any]] = []
        while result.has_next():
            rows.append(result.get_next())
        return rows


__all__ = ["KuzuRelationStore"]
