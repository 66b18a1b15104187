"""Tests for PersonNetworkService end-to-end exploration.

Test categories:
- TestExploreNetwork: scenario, coordinates, metrics, reproducible seed, defaults (5 tests)
- TestPartialResults: metrics crash, layout crash, metrics timeout, shared timeout (4 tests)
- TestExploreErrors: bad layout before I/O, store unavailable, invalid depth (3 tests)
- TestInsights: dense/sparse, clustering, components, hubs (4 tests)
- TestConvenienceVariants: direct, kinship, association networks (4 tests)
- TestPoolAccess: compute_metrics, populate_coordinates, central_nodes, edge_stats (4 tests)
- TestLifecycle: owned pool closed, shared pool left open (2 tests)
"""

from __future__ import annotations

import threading
import time

import pytest

from cbdb_network import (
    GraphSnapshot,
    GraphWorkerPool,
    InvalidInputError,
    NetworkConfig,
    PersonNetworkService,
    PersonNode,
    StoreUnavailableError,
)
from cbdb_network.graph.types import DegreeDistribution, MetricsResult
from cbdb_network.service import generate_insights


def crash(*_args):
    raise RuntimeError("worker process died")


_release = threading.Event()


def hang(*_args):
    _release.wait(5)
    return {}


@pytest.fixture
def service(memory_store, config):
    svc = PersonNetworkService(memory_store, config)
    yield svc
    svc.close()


def service_with_tasks(store, config, **tasks):
    pool = GraphWorkerPool(config, tasks=tasks)
    return PersonNetworkService(store, config, pool=pool), pool


def has_xy(node):
    return "x" in node.attributes and "y" in node.attributes


class TestExploreNetwork:
    def test_kinship_scenario(self, service):
        result = service.explore_network([1762], 1, ["kinship"], seed=42)
        assert result.snapshot.node_ids() == [1762, 526]
        assert [(e.source, e.target, e.edge_type.value) for e in result.snapshot.edges] == [
            (1762, 526, "kinship"),
        ]
        assert result.partial is False
        assert result.errors == {}
        assert result.central_person_ids == [1762]

    def test_every_node_gets_coordinates(self, service):
        result = service.explore_network([1762], 2, seed=7)
        assert all(has_xy(n) for n in result.snapshot.nodes)
        # display attributes survive the layout round trip
        assert result.snapshot.nodes[0].attributes["node_type"] == "central"

    def test_metrics_attached(self, service):
        metrics = service.explore_network([1762], 1, ["kinship"], seed=1).metrics
        assert metrics.node_count == 2
        assert metrics.edge_count == 1
        assert metrics.density == pytest.approx(1.0)
        assert metrics.is_connected is True

    def test_same_seed_same_layout(self, service):
        first = service.explore_network([1762], 2, seed=42)
        second = service.explore_network([1762], 2, seed=42)
        assert first.to_dict() == second.to_dict()

    def test_default_types_and_layout(self, service):
        result = service.explore_network([1762])
        assert result.snapshot.node_ids() == [1762, 526, 999, 3767]
        payload = result.to_dict()
        assert set(payload) == {
            "centralPersonIds", "nodes", "edges", "truncated",
            "metrics", "errors", "partial", "insights",
        }


class TestPartialResults:
    def test_metrics_crash_keeps_layout(self, memory_store, config):
        svc, pool = service_with_tasks(memory_store, config, calculate_all_metrics=crash)
        with pool:
            result = svc.explore_network([1762], 1, ["kinship"], seed=1)
        assert result.partial is True
        assert result.metrics is None
        assert result.insights == []
        assert result.errors["metrics"]["kind"] == "worker_failure"
        assert result.errors["metrics"]["retryable"] is True
        assert all(has_xy(n) for n in result.snapshot.nodes)

    def test_layout_crash_keeps_metrics(self, memory_store, config):
        svc, pool = service_with_tasks(memory_store, config, populate_coordinates_with_layout=crash)
        with pool:
            result = svc.explore_network([1762], 1, ["kinship"], seed=1)
        assert result.partial is True
        assert set(result.errors) == {"layout"}
        assert result.metrics.node_count == 2
        assert result.snapshot.node_ids() == [1762, 526]
        assert not any(has_xy(n) for n in result.snapshot.nodes)

    def test_metrics_timeout_is_reported(self, memory_store):
        config = NetworkConfig(max_workers=2, task_timeout=0.1)
        svc, pool = service_with_tasks(memory_store, config, calculate_all_metrics=hang)
        try:
            result = svc.explore_network([1762], 1, ["kinship"], seed=1)
        finally:
            _release.set()
            pool.close()
            _release.clear()
        assert "timed out" in result.errors["metrics"]["message"]
        assert "layout" not in result.errors

    def test_both_hanging_tasks_share_one_timeout(self, memory_store):
        config = NetworkConfig(max_workers=2, task_timeout=0.3)
        svc, pool = service_with_tasks(
            memory_store, config,
            calculate_all_metrics=hang, populate_coordinates_with_layout=hang,
        )
        started = time.monotonic()
        try:
            result = svc.explore_network([1762], 1, ["kinship"], seed=1)
            elapsed = time.monotonic() - started
        finally:
            _release.set()
            pool.close()
            _release.clear()
        assert set(result.errors) == {"metrics", "layout"}
        assert elapsed < 0.55


class TestExploreErrors:
    def test_unknown_layout_rejected_before_io(self, service, memory_store):
        before = memory_store.query_count
        with pytest.raises(InvalidInputError):
            service.explore_network([1762], 1, ["kinship"], layout_type="hexagon")
        assert memory_store.query_count == before

    def test_store_unavailable_is_not_an_empty_success(self, service, memory_store):
        memory_store.set_available(False)
        with pytest.raises(StoreUnavailableError):
            service.explore_network([1762], 1)

    def test_negative_depth(self, service):
        with pytest.raises(InvalidInputError):
            service.explore_network([1762], -2)


def metrics_with(**overrides):
    base = dict(
        node_count=10, edge_count=10, density=0.3, avg_degree=2.0,
        clustering_coefficient=0.3, degree_distribution=DegreeDistribution(1, 4, 2, 2.0),
        component_count=1, largest_component_size=10, is_connected=True,
    )
    base.update(overrides)
    return MetricsResult(**base)


class TestInsights:
    def test_moderate_network_has_no_remarks(self):
        assert generate_insights(metrics_with()) == []

    def test_density_and_clustering_extremes(self):
        insights = generate_insights(metrics_with(density=0.8, clustering_coefficient=0.05))
        assert insights == [
            "Highly dense network indicates strong interconnectedness",
            "Low clustering suggests hierarchical or star-like structure",
        ]

    def test_components(self, service):
        result = service.explore_network([1762, 8001], 1, ["kinship"], seed=1)
        assert result.metrics.component_count == 2
        assert "Network has 2 separate components" in result.insights

    def test_hubs(self):
        insights = generate_insights(metrics_with(degree_distribution=DegreeDistribution(1, 30, 2, 3.0)))
        assert "Wide degree distribution indicates presence of hubs" in insights


class TestConvenienceVariants:
    def test_direct_network(self, service):
        result = service.explore_direct_network(1762, seed=1)
        assert result.snapshot.node_ids() == [1762, 526, 999]

    def test_direct_network_with_office(self, service):
        result = service.explore_direct_network(1762, include_office=True, seed=1)
        assert 3767 in result.snapshot.node_ids()

    def test_kinship_network(self, service):
        assert service.explore_kinship_network(1762, seed=1).snapshot.node_ids() == [1762, 526, 7777]

    def test_association_network(self, service):
        result = service.explore_association_network(1762, seed=1)
        assert result.snapshot.node_ids() == [1762, 999, 1384]


class TestPoolAccess:
    def test_compute_metrics(self, service):
        snapshot = service.explore_network([1762], 1, ["kinship"], seed=1).snapshot
        assert service.compute_metrics(snapshot).edge_count == 1

    def test_populate_coordinates_returns_copy(self, service):
        result = service.explore_network([1762], 1, ["kinship"], seed=1)
        bare = GraphSnapshot(nodes=[PersonNode(n.person_id, n.label) for n in result.snapshot.nodes])
        placed = service.populate_coordinates(bare, "grid")
        assert all(has_xy(n) for n in placed.nodes)
        assert not any(has_xy(n) for n in bare.nodes)

    def test_central_nodes(self, service):
        snapshot = service.explore_network([1762], 1, seed=1).snapshot
        top = service.central_nodes(snapshot, top_n=1)
        assert top == [("person:1762", 3)]

    def test_edge_stats(self, service):
        assert service.edge_stats(1762)["total"] == 3


class TestLifecycle:
    def test_owned_pool_is_closed(self, memory_store, config):
        with PersonNetworkService(memory_store, config) as svc:
            pool = svc.pool
        assert pool.stats()["closed"] is True

    def test_shared_pool_stays_open(self, memory_store, config):
        with GraphWorkerPool(config) as pool:
            with PersonNetworkService(memory_store, config, pool=pool):
                pass
            assert pool.stats()["closed"] is False
