"""
Tests for the allocation analyzer.
"""

import io
import json
import os
import tempfile
import unittest

import matplotlib

matplotlib.use("Agg")

from rich.console import Console

from dronefleet.analyzer import AllocationAnalyzer
from dronefleet.geo import Point
from dronefleet.mission import Delivery, DeliveryStatus, Priority
from dronefleet.optimizer import OptimizedAllocation, SimpleAllocation
from dronefleet.vehicles import Drone, DroneState


class TestAllocationAnalyzer(unittest.TestCase):
    """Test AllocationAnalyzer class."""

    def setUp(self):
        """Set up two drones and four deliveries, three of them clustered."""
        self.output = io.StringIO()
        self.analyzer = AllocationAnalyzer(Console(file=self.output, width=120))
        self.drones = [Drone(1), Drone(2)]
        self.pending = [
            Delivery(1, Point(26, 25), 2.0, Priority.HIGH),
            Delivery(2, Point(25, 26), 2.0),
            Delivery(3, Point(26, 26), 2.0),
            Delivery(4, Point(20, 20), 2.0, Priority.LOW),
        ]

    def evaluate_both(self):
        return self.analyzer.evaluate(
            [SimpleAllocation(), OptimizedAllocation()], self.drones, self.pending
        )

    def test_add_result(self):
        """Test adding results to analyzer."""
        self.analyzer.add_result(SimpleAllocation().solve(self.drones, self.pending))
        self.assertEqual(len(self.analyzer.results), 1)
        self.analyzer.clear_results()
        self.assertEqual(self.analyzer.results, [])

    def test_evaluate_leaves_state_untouched(self):
        """Test evaluating strategies only plans."""
        results = self.evaluate_both()
        self.assertEqual(len(results), 2)
        self.assertEqual(len(self.analyzer.results), 2)
        self.assertTrue(all(d.status is DeliveryStatus.PENDING for d in self.pending))
        self.assertTrue(all(d.state is DroneState.IDLE for d in self.drones))

    def test_compare_strategies(self):
        """Test comparing multiple strategies."""
        self.evaluate_both()
        comparison = self.analyzer.compare_strategies()

        self.assertEqual(len(comparison["strategies"]), 2)
        self.assertEqual(comparison["most_allocated"], "Optimized Allocation")
        self.assertIsNotNone(comparison["shortest_distance"])
        self.assertIsNotNone(comparison["fastest"])

    def test_compare_empty(self):
        """Test an empty analyzer compares to nothing."""
        self.assertEqual(self.analyzer.compare_strategies(), {})
        self.assertEqual(self.analyzer.get_statistics(), {})

    def test_get_statistics(self):
        """Test getting statistics."""
        self.evaluate_both()
        stats = self.analyzer.get_statistics()

        self.assertEqual(stats["num_strategies"], 2)
        self.assertEqual(stats["allocated"]["min"], 2.0)
        self.assertEqual(stats["allocated"]["max"], 4.0)
        self.assertEqual(stats["unallocated"]["avg"], 1.0)
        self.assertIn("distance", stats)
        self.assertIn("computation_time", stats)

    def test_print_comparison(self):
        """Test the comparison is rendered on the console."""
        self.analyzer.print_comparison()
        self.assertIn("No results", self.output.getvalue())

        self.evaluate_both()
        self.analyzer.print_comparison()
        text = self.output.getvalue()
        self.assertIn("Simple Allocation", text)
        self.assertIn("Most Allocated", text)

    def test_export_to_json(self):
        """Test exporting results to JSON."""
        self.evaluate_both()

        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            temp_path = f.name

        try:
            self.analyzer.export_to_json(temp_path)
            with open(temp_path) as f:
                data = json.load(f)

            self.assertIn("comparison", data)
            self.assertIn("statistics", data)
            self.assertEqual(len(data["results"]), 2)
            simple = data["results"][0]
            self.assertEqual(simple["strategy"], "Simple Allocation")
            self.assertEqual([a["deliveries"] for a in simple["allocations"]], [[1], [2]])
            self.assertEqual(simple["unallocated"], [3, 4])
        finally:
            os.unlink(temp_path)

    def test_visualize(self):
        """Test the route plot is written to disk."""
        self.assertIsNone(self.analyzer.visualize())

        self.evaluate_both()
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "routes.png")
            fig = self.analyzer.visualize(save_path=path)
            self.assertTrue(os.path.exists(path))
            self.assertEqual(len(fig.axes), 2)


if __name__ == '__main__':
    unittest.main()
