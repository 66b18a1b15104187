"""SQLite-backed RelationStore over CBDB-shaped tables."""

import logging
import sqlite3
import threading
from pathlib import Path

from ..exceptions import StoreUnavailableError
from ..graph.types import PersonNode, PersonRecord, RelationEdge, RelationType
from .protocol import RELATION_COUNT_FIELDS

logger = logging.getLogger(__name__)

# Id lists are bound as one JSON array parameter and expanded with
# json_each, so a batch is a single query whatever its size.
_IDS = "(SELECT value FROM json_each(?))"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS BIOG_MAIN (
        c_personid INTEGER PRIMARY KEY,
        c_name TEXT,
        c_name_chn TEXT,
        c_birthyear INTEGER,
        c_deathyear INTEGER,
        c_index_year INTEGER,
        c_dy INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS KIN_DATA (
        c_personid INTEGER NOT NULL,
        c_kin_id INTEGER,
        c_kin_code INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS KINSHIP_CODES (
        c_kincode INTEGER PRIMARY KEY,
        c_kinrel TEXT,
        c_kinrel_chn TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ASSOC_DATA (
        c_personid INTEGER NOT NULL,
        c_assoc_id INTEGER,
        c_assoc_code INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ASSOC_CODES (
        c_assoc_code INTEGER PRIMARY KEY,
        c_assoc_desc TEXT,
        c_assoc_desc_chn TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS POSTED_TO_OFFICE_DATA (
        c_personid INTEGER NOT NULL,
        c_office_id INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS OFFICE_CODES (
        c_office_id INTEGER PRIMARY KEY,
        c_office_pinyin TEXT,
        c_office_chn TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ALTNAME_DATA (
        c_personid INTEGER NOT NULL,
        c_alt_name TEXT,
        c_alt_name_chn TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS BIOG_TEXT_DATA (
        c_personid INTEGER NOT NULL,
        c_textid INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_kin_person ON KIN_DATA(c_personid)",
    "CREATE INDEX IF NOT EXISTS idx_kin_kin ON KIN_DATA(c_kin_id)",
    "CREATE INDEX IF NOT EXISTS idx_assoc_person ON ASSOC_DATA(c_personid)",
    "CREATE INDEX IF NOT EXISTS idx_assoc_assoc ON ASSOC_DATA(c_assoc_id)",
    "CREATE INDEX IF NOT EXISTS idx_posted_person ON POSTED_TO_OFFICE_DATA(c_personid)",
    "CREATE INDEX IF NOT EXISTS idx_posted_office ON POSTED_TO_OFFICE_DATA(c_office_id)",
    "CREATE INDEX IF NOT EXISTS idx_altname_person ON ALTNAME_DATA(c_personid)",
)


class SQLiteRelationStore:
    """RelationStore over a CBDB SQLite database.

    Works against a real CBDB export (tables are created only if missing)
    or against a fresh file populated through the ``add_*`` helpers.
    """

    def __init__(self, db_path: Path | str, store_id: str | None = None):
        """Open the database and ensure the schema exists.

        Args:
            db_path: Path to the SQLite database file
            store_id: Optional identifier; defaults to ``sqlite:<path>``

        Raises:
            StoreUnavailableError: If the database cannot be opened
        """
        self.db_path = Path(db_path)
        self._store_id = store_id or f"sqlite:{self.db_path}"
        self._lock = threading.Lock()
        self._connection = None
        self.initialize_schema()

    @property
    def store_id(self) -> str:
        return self._store_id

    def initialize_schema(self):
        """Connect and create any missing CBDB tables and indexes."""
        try:
            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=10.0,
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                self._connection.execute(statement)
            self._connection.commit()
        except sqlite3.DatabaseError as e:
            logger.error("Failed to open relation store %s: %s", self.db_path, e)
            raise StoreUnavailableError(f"Cannot open database {self.db_path}: {e}") from e

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
        self._write(
            "INSERT OR REPLACE INTO BIOG_MAIN VALUES (?, ?, ?, ?, ?, ?, ?)",
            (person_id, name, name_chn, birth_year, death_year, index_year, dynasty_code),
        )

    def add_kinship(self, person_id: int, kin_id: int, code: int = 0, label: str | None = None) -> None:
        self._write("INSERT INTO KIN_DATA VALUES (?, ?, ?)", (person_id, kin_id, code))
        if label is not None:
            self._write(
                "INSERT OR REPLACE INTO KINSHIP_CODES (c_kincode, c_kinrel_chn) VALUES (?, ?)",
                (code, label),
            )

    def add_association(self, person_id: int, assoc_id: int, code: int = 0, label: str | None = None) -> None:
        self._write("INSERT INTO ASSOC_DATA VALUES (?, ?, ?)", (person_id, assoc_id, code))
        if label is not None:
            self._write(
                "INSERT OR REPLACE INTO ASSOC_CODES (c_assoc_code, c_assoc_desc_chn) VALUES (?, ?)",
                (code, label),
            )

    def add_office(self, office_id: int, name: str) -> None:
        self._write(
            "INSERT OR REPLACE INTO OFFICE_CODES (c_office_id, c_office_chn) VALUES (?, ?)",
            (office_id, name),
        )

    def add_posting(self, person_id: int, office_id: int) -> None:
        self._write("INSERT INTO POSTED_TO_OFFICE_DATA VALUES (?, ?)", (person_id, office_id))

    def add_alt_name(self, person_id: int, alt_name: str = "", alt_name_chn: str = "") -> None:
        self._write("INSERT INTO ALTNAME_DATA VALUES (?, ?, ?)", (person_id, alt_name, alt_name_chn))

    def add_text(self, person_id: int, text_id: int = 0) -> None:
        self._write("INSERT INTO BIOG_TEXT_DATA VALUES (?, ?)", (person_id, text_id))

    # ── graph data ───────────────────────────────────────────

    def find_edges(
        self,
        person_ids: list[int],
        relation_types: list[RelationType],
    ) -> list[RelationEdge]:
        """Fetch edges touching *person_ids*, one query per relation type."""
        ids_json = _ids_param(person_ids)
        edges: list[RelationEdge] = []

        if RelationType.KINSHIP in relation_types:
            rows = self._read(
                f"""
                SELECT k.c_personid AS source, k.c_kin_id AS target,
                       k.c_kin_code AS code,
                       COALESCE(c.c_kinrel_chn, c.c_kinrel) AS label
                FROM KIN_DATA k
                LEFT JOIN KINSHIP_CODES c ON k.c_kin_code = c.c_kincode
                WHERE k.c_kin_id IS NOT NULL
                  AND (k.c_personid IN {_IDS} OR k.c_kin_id IN {_IDS})
                """,
                (ids_json, ids_json),
            )
            edges.extend(_rows_to_edges(rows, RelationType.KINSHIP, "Kinship"))

        if RelationType.ASSOCIATION in relation_types:
            rows = self._read(
                f"""
                SELECT a.c_personid AS source, a.c_assoc_id AS target,
                       a.c_assoc_code AS code,
                       COALESCE(c.c_assoc_desc_chn, c.c_assoc_desc) AS label
                FROM ASSOC_DATA a
                LEFT JOIN ASSOC_CODES c ON a.c_assoc_code = c.c_assoc_code
                WHERE a.c_assoc_id IS NOT NULL
                  AND (a.c_personid IN {_IDS} OR a.c_assoc_id IN {_IDS})
                """,
                (ids_json, ids_json),
            )
            edges.extend(_rows_to_edges(rows, RelationType.ASSOCIATION, "Association"))

        if RelationType.OFFICE in relation_types:
            # Colleague links: two persons posted to the same office.
            rows = self._read(
                f"""
                SELECT DISTINCT p.c_personid AS source, q.c_personid AS target,
                       p.c_office_id AS code,
                       COALESCE(o.c_office_chn, o.c_office_pinyin) AS label
                FROM POSTED_TO_OFFICE_DATA p
                JOIN POSTED_TO_OFFICE_DATA q
                  ON p.c_office_id = q.c_office_id AND p.c_personid <> q.c_personid
                LEFT JOIN OFFICE_CODES o ON p.c_office_id = o.c_office_id
                WHERE p.c_personid IN {_IDS}
                """,
                (ids_json,),
            )
            edges.extend(_rows_to_edges(rows, RelationType.OFFICE, "Office"))

        return edges

    def find_nodes(self, person_ids: list[int]) -> list[PersonNode]:
        rows = self._read(
            f"""
            SELECT c_personid, c_name, c_name_chn, c_birthyear, c_deathyear, c_dy
            FROM BIOG_MAIN
            WHERE c_personid IN {_IDS}
            """,
            (_ids_param(person_ids),),
        )
        by_id = {row["c_personid"]: row for row in rows}
        nodes: list[PersonNode] = []
        for pid in dict.fromkeys(person_ids):
            row = by_id.get(pid)
            if row is None:
                continue
            attributes = {"name": row["c_name"] or "", "name_chn": row["c_name_chn"] or ""}
            for key, column in (
                ("dynasty_code", "c_dy"),
                ("birth_year", "c_birthyear"),
                ("death_year", "c_deathyear"),
            ):
                if row[column] is not None:
                    attributes[key] = row[column]
            nodes.append(PersonNode(
                person_id=pid,
                label=row["c_name_chn"] or row["c_name"] or f"Person {pid}",
                attributes=attributes,
            ))
        return nodes

    # ── search ───────────────────────────────────────────────

    def find_by_name(
        self,
        query: str,
        accurate: bool = False,
        start: int = 0,
        limit: int = 20,
    ) -> tuple[list[PersonRecord], int]:
        if accurate:
            primary = "(c_name_chn = :q OR c_name = :q)"
            alternative = "(c_alt_name_chn = :q OR c_alt_name = :q)"
            params = {"q": query}
        else:
            primary = "(c_name_chn LIKE :q OR c_name LIKE :q)"
            alternative = "(c_alt_name_chn LIKE :q OR c_alt_name LIKE :q)"
            params = {"q": f"%{query}%"}

        combined = f"""
            WITH combined_search AS (
                SELECT c_personid AS id, 1 AS priority FROM BIOG_MAIN WHERE {primary}
                UNION
                SELECT c_personid AS id, 2 AS priority FROM ALTNAME_DATA WHERE {alternative}
            ),
            prioritized AS (
                SELECT id, MIN(priority) AS min_priority
                FROM combined_search
                GROUP BY id
            )
        """
        with self._lock:
            if self._connection is None:
                raise StoreUnavailableError(f"Store {self._store_id} is closed")
            try:
                total = self._connection.execute(
                    combined + "SELECT COUNT(*) AS n FROM prioritized", params,
                ).fetchone()["n"]
                rows = self._connection.execute(
                    combined
                    + """
                    SELECT b.c_personid AS id, p.id AS pid, b.c_name, b.c_name_chn,
                           b.c_birthyear, b.c_deathyear, b.c_index_year, b.c_dy
                    FROM prioritized p
                    LEFT JOIN BIOG_MAIN b ON b.c_personid = p.id
                    ORDER BY p.min_priority, p.id
                    LIMIT :limit OFFSET :start
                    """,
                    {**params, "limit": limit, "start": start},
                ).fetchall()
            except sqlite3.Error as e:
                raise self._unavailable(e) from e

        records = [
            PersonRecord(
                person_id=row["pid"],
                name=row["c_name"] or "",
                name_chn=row["c_name_chn"] or "",
                birth_year=row["c_birthyear"],
                death_year=row["c_deathyear"],
                index_year=row["c_index_year"],
                dynasty_code=row["c_dy"],
            )
            for row in rows
        ]
        return records, int(total)

    def count_relations_batch(self, person_ids: list[int]) -> dict[int, dict[str, int]]:
        """Relation counts for all ids in a single query."""
        rows = self._read(
            """
            SELECT ids.value AS id,
                (SELECT COUNT(*) FROM KIN_DATA WHERE c_personid = ids.value) AS kinship,
                (SELECT COUNT(*) FROM ASSOC_DATA
                    WHERE c_personid = ids.value OR c_assoc_id = ids.value) AS association,
                (SELECT COUNT(*) FROM POSTED_TO_OFFICE_DATA WHERE c_personid = ids.value) AS office,
                (SELECT COUNT(*) FROM BIOG_TEXT_DATA WHERE c_personid = ids.value) AS text,
                (SELECT COUNT(*) FROM ALTNAME_DATA WHERE c_personid = ids.value) AS altname
            FROM json_each(?) AS ids
            """,
            (_ids_param(person_ids),),
        )
        counts = {pid: dict.fromkeys(RELATION_COUNT_FIELDS, 0) for pid in person_ids}
        for row in rows:
            counts[row["id"]] = {f: int(row[f] or 0) for f in RELATION_COUNT_FIELDS}
        return counts

    # ── lifecycle ────────────────────────────────────────────

    def close(self):
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None

    def get_connection(self):
        """Underlying sqlite3 connection for advanced operations."""
        return self._connection

    # ── private helpers ──────────────────────────────────────

    def _read(self, sql: str, params: tuple) -> list[sqlite3.Row]:
        with self._lock:
            if self._connection is None:
                raise StoreUnavailableError(f"Store {self._store_id} is closed")
            try:
                return self._connection.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise self._unavailable(e) from e

    def _write(self, sql: str, params: tuple) -> None:
        with self._lock:
            if self._connection is None:
                raise StoreUnavailableError(f"Store {self._store_id} is closed")
            try:
                self._connection.execute(sql, params)
                self._connection.commit()
            except sqlite3.Error as e:
                raise self._unavailable(e) from e

    def _unavailable(self, error: Exception) -> StoreUnavailableError:
        logger.error("Relation store query failed on %s: %s", self.db_path, error)
        return StoreUnavailableError(f"Store {self._store_id} query failed: {error}")


def _ids_param(person_ids: list[int]) -> str:
    return "[" + ",".join(str(int(pid)) for pid in dict.fromkeys(person_ids)) + "]"


def _rows_to_edges(rows, rtype: RelationType, fallback_label: str) -> list[RelationEdge]:
    return [
        RelationEdge(
            source=row["source"],
            target=row["target"],
            edge_type=rtype,
            edge_code=row["code"] or 0,
            label=row["label"] or fallback_label,
        )
        for row in rows
    ]


__all__ = ["SQLiteRelationStore"]
