"""Tests specific to SQLiteRelationStore.

Test categories:
- TestSchema: tables created, reopening an existing file keeps data (2 tests)
- TestBatching: large id batches in one query, duplicate ids (2 tests)
- TestLabels: missing code rows fall back to family labels (1 test)
- TestFailures: unreadable file, closed store (2 tests)
"""

from __future__ import annotations

import pytest

from cbdb_network import RelationType, SQLiteRelationStore, StoreUnavailableError


class TestSchema:
    def test_cbdb_tables_exist(self, sqlite_store):
        rows = sqlite_store.get_connection().execute(
            "SELECT name FROM sqlite_master WHERE type = 'table'"
        ).fetchall()
        names = {row["name"] for row in rows}
        assert {"BIOG_MAIN", "KIN_DATA", "ASSOC_DATA", "POSTED_TO_OFFICE_DATA", "ALTNAME_DATA"} <= names

    def test_reopen_keeps_data(self, tmp_path):
        path = tmp_path / "cbdb.sqlite3"
        store = SQLiteRelationStore(path)
        store.add_person(1762, name="Wang Anshi", name_chn="王安石")
        store.close()

        reopened = SQLiteRelationStore(path)
        try:
            assert [n.label for n in reopened.find_nodes([1762])] == ["王安石"]
        finally:
            reopened.close()


class TestBatching:
    def test_batch_larger_than_parameter_limit(self, sqlite_store):
        ids = list(range(1, 40_000)) + [1762]
        nodes = sqlite_store.find_nodes(ids)
        assert {n.person_id for n in nodes} == {526, 999, 1384, 3767, 1762, 7777, 8001, 8002, 8003, 8100}
        edges = sqlite_store.find_edges(ids, [RelationType.KINSHIP])
        assert len(edges) == 3

    def test_duplicate_ids(self, sqlite_store):
        nodes = sqlite_store.find_nodes([1762, 1762, 526])
        assert [n.person_id for n in nodes] == [1762, 526]


class TestLabels:
    def test_fallback_label_without_code_row(self, sqlite_store):
        sqlite_store.add_kinship(8001, 8002, code=999)
        (edge,) = sqlite_store.find_edges([8001], [RelationType.KINSHIP])
        assert edge.label == "Kinship"
        assert edge.edge_code == 999


class TestFailures:
    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "not_a_db.sqlite3"
        path.write_bytes(b"this is definitely not a sqlite database" * 100)
        with pytest.raises(StoreUnavailableError):
            SQLiteRelationStore(path)

    def test_closed_store_search(self, sqlite_store):
        sqlite_store.close()
        with pytest.raises(StoreUnavailableError):
            sqlite_store.find_by_name("wang")
