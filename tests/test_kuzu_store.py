"""Tests specific to KuzuRelationStore.

Test categories:
- TestPersistence: data survives reopening the database directory (1 test)
- TestGraphShape: merge on re-add, relation endpoints created on demand (2 tests)
- TestOfficeEdges: colleagues derived through shared Office nodes (1 test)

All tests use real Kuzu databases via tmp_path.
"""

from __future__ import annotations

from cbdb_network import KuzuRelationStore, RelationType


class TestPersistence:
    def test_reopen_keeps_data(self, tmp_path):
        path = tmp_path / "cbdb_kuzu"
        store = KuzuRelationStore(path, store_id="first")
        store.add_person(1762, name="Wang Anshi", name_chn="王安石")
        store.add_kinship(1762, 526, code=75, label="F")
        store.close()

        reopened = KuzuRelationStore(path, store_id="second")
        try:
            assert [n.label for n in reopened.find_nodes([1762])] == ["王安石"]
            assert len(reopened.find_edges([1762], [RelationType.KINSHIP])) == 1
        finally:
            reopened.close()


class TestGraphShape:
    def test_add_person_twice_updates(self, kuzu_store):
        kuzu_store.add_person(1762, name="Wang Anshi", name_chn="王荊公")
        (node,) = kuzu_store.find_nodes([1762])
        assert node.label == "王荊公"

    def test_relation_to_unregistered_person(self, kuzu_store):
        kuzu_store.add_association(1762, 424242, code=9, label="Friend")
        edges = kuzu_store.find_edges([424242], [RelationType.ASSOCIATION])
        assert [(e.source, e.target) for e in edges] == [(1762, 424242)]
        (node,) = kuzu_store.find_nodes([424242])
        assert node.label == "Person 424242"


class TestOfficeEdges:
    def test_shared_office_links_all_holders(self, kuzu_store):
        kuzu_store.add_posting(999, 100)
        edges = kuzu_store.find_edges([1762], [RelationType.OFFICE])
        assert sorted(e.target for e in edges) == [999, 3767]
        assert all(e.edge_code == 100 for e in edges)
