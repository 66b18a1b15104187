"""Tests for coordinate seeding and force layout refinement.

Test categories:
- TestRandomLayout: determinism, range, seed sensitivity, no input mutation (4 tests)
- TestExistingCoordinates: idempotence, kept values, invalid values replaced (3 tests)
- TestCircleAndGrid: positions by index (2 tests)
- TestLayoutErrors: unknown layout type (1 test)
- TestBatch: populate_coordinates_batch fills every payload (1 test)
- TestForceLayoutRunner: completes, cancel releases, time box, context manager,
  large-graph time box, prompt cancel (6 tests)
"""

from __future__ import annotations

import copy
import math
import time

import pytest

from cbdb_network import (
    ForceLayoutRunner,
    InvalidInputError,
    populate_coordinates,
    populate_coordinates_batch,
    populate_coordinates_with_layout,
)


def make_payload(n, edges=()):
    return {
        "nodes": [{"key": f"person:{i}", "id": i, "label": f"P{i}", "attributes": {}} for i in range(n)],
        "edges": [{"source": f"person:{a}", "target": f"person:{b}"} for a, b in edges],
    }


def positions(data):
    return [(n["attributes"]["x"], n["attributes"]["y"]) for n in data["nodes"]]


class TestRandomLayout:
    def test_same_seed_same_coordinates(self):
        data = make_payload(8)
        first = populate_coordinates_with_layout(data, "random", seed=42)
        second = populate_coordinates_with_layout(data, "random", seed=42)
        assert positions(first) == positions(second)

    def test_coordinates_within_spread(self):
        placed = populate_coordinates_with_layout(make_payload(50), "random", seed=1)
        for x, y in positions(placed):
            assert -500 <= x < 500
            assert -500 <= y < 500

    def test_different_seeds_differ(self):
        data = make_payload(5)
        assert positions(populate_coordinates_with_layout(data, seed=1)) != positions(
            populate_coordinates_with_layout(data, seed=2)
        )

    def test_input_is_not_mutated(self):
        data = make_payload(4)
        original = copy.deepcopy(data)
        populate_coordinates_with_layout(data, "grid")
        assert data == original


class TestExistingCoordinates:
    def test_second_pass_is_idempotent(self):
        once = populate_coordinates(make_payload(6))
        twice = populate_coordinates(once)
        assert twice == once

    def test_placed_nodes_keep_their_position(self):
        data = make_payload(3)
        data["nodes"][1]["attributes"].update({"x": 12.5, "y": -3})
        placed = populate_coordinates_with_layout(data, "circle")
        assert positions(placed)[1] == (12.5, -3)

    def test_non_finite_or_non_numeric_values_are_replaced(self):
        data = make_payload(3)
        data["nodes"][0]["attributes"].update({"x": float("nan"), "y": 1.0})
        data["nodes"][1]["attributes"].update({"x": "10", "y": "20"})
        data["nodes"][2]["attributes"].update({"x": True, "y": False})
        placed = populate_coordinates_with_layout(data, "random", seed=3)
        for x, y in positions(placed):
            assert isinstance(x, float) and math.isfinite(x)
            assert isinstance(y, float) and math.isfinite(y)


class TestCircleAndGrid:
    def test_circle_radius_400_in_order(self):
        placed = populate_coordinates_with_layout(make_payload(4), "circle")
        expected = [(400, 0), (0, 400), (-400, 0), (0, -400)]
        for (x, y), (ex, ey) in zip(positions(placed), expected):
            assert x == pytest.approx(ex, abs=1e-9)
            assert y == pytest.approx(ey, abs=1e-9)

    def test_grid_centred_with_spacing_100(self):
        placed = populate_coordinates_with_layout(make_payload(5), "grid")
        # 5 nodes -> 3 columns, offset cols / 2 = 1.5
        assert positions(placed) == [
            (-150.0, -150.0), (-50.0, -150.0), (50.0, -150.0),
            (-150.0, -50.0), (-50.0, -50.0),
        ]


class TestLayoutErrors:
    def test_unknown_layout_type(self):
        with pytest.raises(InvalidInputError):
            populate_coordinates_with_layout(make_payload(2), "spiral")


class TestBatch:
    def test_every_payload_is_filled(self):
        results = populate_coordinates_batch([make_payload(2), make_payload(3)])
        assert [len(r["nodes"]) for r in results] == [2, 3]
        assert all("x" in n["attributes"] for r in results for n in r["nodes"])


class TestForceLayoutRunner:
    def test_runs_all_iterations(self):
        runner = ForceLayoutRunner(make_payload(6, [(0, 1), (1, 2)]), iterations=20).start()
        assert runner.wait(timeout=30)
        assert runner.iterations_done == 20
        assert runner.released
        for x, y in positions(runner.result()):
            assert math.isfinite(x) and math.isfinite(y)

    def test_cancel_stops_and_releases(self):
        runner = ForceLayoutRunner(make_payload(40), iterations=10_000_000).start()
        runner.cancel()
        assert runner.cancelled
        assert runner.released
        assert not runner.running
        assert runner.iterations_done < 10_000_000

    def test_duration_time_boxes_the_run(self):
        runner = ForceLayoutRunner(make_payload(30), iterations=10_000_000, duration=0.2).start()
        assert runner.wait(timeout=30)
        assert runner.released
        assert not runner.cancelled

    def test_context_manager_releases_on_exit(self):
        with ForceLayoutRunner(make_payload(10), iterations=10_000_000) as runner:
            assert runner.running or runner.iterations_done > 0
        assert runner.released
        assert not runner.running

    def test_duration_holds_on_large_graph(self):
        chain = make_payload(1500, [(i, i + 1) for i in range(1499)])
        runner = ForceLayoutRunner(chain, iterations=10_000_000, duration=0.2)
        started = time.monotonic()
        runner.start()
        assert runner.wait(timeout=30)
        assert time.monotonic() - started < 0.6

    def test_cancel_is_prompt_mid_iteration(self):
        chain = make_payload(1500, [(i, i + 1) for i in range(1499)])
        runner = ForceLayoutRunner(chain, iterations=10_000_000).start()
        time.sleep(0.05)
        started = time.monotonic()
        runner.cancel()
        assert time.monotonic() - started < 0.3
        assert runner.released
        for x, y in positions(runner.result()):
            assert math.isfinite(x) and math.isfinite(y)
