"""Tests for graph data types, configuration and error structure.

Test categories:
- TestRelationType: parse strings/enums, dedup, unknown values (4 tests)
- TestPersonNodeAndEdge: keys, pair_key dedup identity, payload round trip (5 tests)
- TestGraphSnapshot: validate, payload shape (3 tests)
- TestMetricsResult: camelCase dict conversion, edge count over distinct pairs (2 tests)
- TestNetworkConfig: defaults and validation (3 tests)
- TestErrors: kind / retryable / to_dict, pickling (3 tests)
"""

from __future__ import annotations

import pickle

import pytest

from cbdb_network import (
    GraphSnapshot,
    InvalidInputError,
    MalformedGraphError,
    MetricsResult,
    NetworkConfig,
    PersonNode,
    RelationEdge,
    RelationType,
    StoreUnavailableError,
    WorkerFailureError,
)
from cbdb_network.graph.metrics import calculate_all_metrics
from cbdb_network.graph.types import node_key, parse_node_key


class TestRelationType:
    def test_parse_strings(self):
        assert RelationType.parse(["kinship", "Office"]) == [RelationType.KINSHIP, RelationType.OFFICE]

    def test_parse_accepts_enum_members(self):
        assert RelationType.parse([RelationType.ASSOCIATION]) == [RelationType.ASSOCIATION]

    def test_parse_deduplicates(self):
        assert RelationType.parse(["kinship", RelationType.KINSHIP]) == [RelationType.KINSHIP]

    def test_parse_unknown_raises(self):
        with pytest.raises(InvalidInputError):
            RelationType.parse(["kinship", "marriage"])


class TestPersonNodeAndEdge:
    def test_node_key(self):
        node = PersonNode(person_id=1762, label="王安石")
        assert node.key == "person:1762"
        assert parse_node_key("person:1762") == 1762
        assert parse_node_key(1762) == 1762
        assert node_key(526) == "person:526"

    def test_pair_key_ignores_direction(self):
        a = RelationEdge(1762, 526, RelationType.KINSHIP, 75)
        b = RelationEdge(526, 1762, RelationType.KINSHIP, 180)
        assert a.pair_key == b.pair_key

    def test_pair_key_distinguishes_types(self):
        a = RelationEdge(1762, 526, RelationType.KINSHIP)
        b = RelationEdge(1762, 526, RelationType.ASSOCIATION)
        assert a.pair_key != b.pair_key

    def test_other_endpoint(self):
        edge = RelationEdge(1762, 999, RelationType.ASSOCIATION)
        assert edge.other(1762) == 999
        assert edge.other(999) == 1762

    def test_payload_round_trip(self):
        node = PersonNode(1762, "王安石", {"dynasty_code": 15})
        edge = RelationEdge(1762, 526, RelationType.KINSHIP, 75, "F")
        assert PersonNode.from_payload(node.to_payload()) == node
        assert RelationEdge.from_payload(edge.to_payload()) == edge
        assert edge.to_payload()["source"] == "person:1762"
        assert edge.to_payload()["edgeType"] == "kinship"


class TestGraphSnapshot:
    def test_validate_passes_for_closed_graph(self):
        snapshot = GraphSnapshot(
            nodes=[PersonNode(1), PersonNode(2)],
            edges=[RelationEdge(1, 2, RelationType.KINSHIP)],
        )
        snapshot.validate()

    def test_validate_rejects_dangling_edge(self):
        snapshot = GraphSnapshot(
            nodes=[PersonNode(1)],
            edges=[RelationEdge(1, 2, RelationType.KINSHIP)],
        )
        with pytest.raises(MalformedGraphError):
            snapshot.validate()

    def test_payload_shape(self):
        snapshot = GraphSnapshot(nodes=[PersonNode(1, "A")], edges=[], truncated=True)
        payload = snapshot.to_payload()
        assert payload == {
            "nodes": [{"key": "person:1", "id": 1, "label": "A", "attributes": {}}],
            "edges": [],
        }
        assert GraphSnapshot.from_payload(payload, truncated=True) == snapshot


class TestMetricsResult:
    def test_from_dict_to_dict(self):
        data = {
            "nodeCount": 3,
            "edgeCount": 2,
            "density": 2 / 3,
            "avgDegree": 4 / 3,
            "clusteringCoefficient": 0.0,
            "degreeDistribution": {"min": 1, "max": 2, "median": 1, "mean": 4 / 3},
            "componentCount": 1,
            "largestComponentSize": 3,
            "isConnected": True,
        }
        metrics = MetricsResult.from_dict(data)
        assert metrics.node_count == 3
        assert metrics.degree_distribution.max == 2
        assert metrics.to_dict() == data

    def test_edge_count_is_distinct_pairs(self):
        snapshot = GraphSnapshot(
            nodes=[PersonNode(1762, "王安石"), PersonNode(526, "王益")],
            edges=[
                RelationEdge(1762, 526, RelationType.KINSHIP, 75, "F"),
                RelationEdge(1762, 526, RelationType.ASSOCIATION, 9, "Friend"),
            ],
        )
        metrics = MetricsResult.from_dict(calculate_all_metrics(snapshot.to_payload()))
        assert len(snapshot.edges) == 2
        assert metrics.edge_count == 1
        assert metrics.density == pytest.approx(1.0)


class TestNetworkConfig:
    def test_defaults(self):
        config = NetworkConfig()
        assert config.max_depth == 6
        assert config.worker_kind == "thread"
        assert config.default_layout == "random"

    def test_rejects_bad_worker_kind(self):
        with pytest.raises(ValueError, match="worker_kind"):
            NetworkConfig(worker_kind="fiber")

    def test_rejects_non_positive_limits(self):
        with pytest.raises(ValueError):
            NetworkConfig(max_nodes=0)
        with pytest.raises(ValueError):
            NetworkConfig(task_timeout=0)


class TestErrors:
    def test_store_unavailable_is_retryable(self):
        error = StoreUnavailableError("db down")
        assert error.to_dict() == {"kind": "store_unavailable", "message": "db down", "retryable": True}

    def test_invalid_input_is_permanent(self):
        assert InvalidInputError("bad").retryable is False
        assert InvalidInputError("bad").kind == "invalid_input"

    def test_worker_failure_pickles_with_task(self):
        error = pickle.loads(pickle.dumps(WorkerFailureError("boom", task="calculate_all_metrics")))
        assert error.task == "calculate_all_metrics"
        assert str(error) == "boom"
