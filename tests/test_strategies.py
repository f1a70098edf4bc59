"""
Tests for allocation strategies.
"""

import unittest

from dronefleet.geo import Point
from dronefleet.mission import Delivery, DeliveryStatus, Priority
from dronefleet.optimizer import (
    AllocationStrategy,
    DeliveryOptimizer,
    OptimizationStats,
    OptimizedAllocation,
    SimpleAllocation,
)
from dronefleet.vehicles import Drone, DroneState

BASE = Point(25.0, 25.0)


def make_delivery(id, x, y, weight=2.0, priority=Priority.MEDIUM, created_at=0.0):
    return Delivery(id, Point(x, y), weight, priority, created_at=created_at)


class TestSimpleAllocation(unittest.TestCase):
    """Test the one-delivery-per-drone strategy."""

    def setUp(self):
        self.strategy = SimpleAllocation()
        self.drones = [Drone(i, base=BASE) for i in (1, 2, 3)]

    def test_pairs_in_rank_order(self):
        """Test the highest priority delivery goes to the first available drone."""
        low = make_delivery(1, 27, 27, priority=Priority.LOW)
        high = make_delivery(2, 23, 23, priority=Priority.HIGH)
        result = self.strategy.solve(self.drones, [low, high])

        self.assertEqual(
            [(a.drone.id, a.delivery_ids) for a in result.allocations],
            [(1, (2,)), (2, (1,))],
        )
        self.assertEqual(result.unallocated, [])
        self.assertEqual(result.strategy_name, "Simple Allocation")

    def test_one_delivery_per_drone(self):
        """Test extra deliveries wait for the next pass."""
        pending = [make_delivery(i, 26, 26) for i in range(1, 6)]
        result = self.strategy.solve(self.drones, pending)
        self.assertEqual(len(result.allocations), 3)
        self.assertTrue(all(len(a.deliveries) == 1 for a in result.allocations))
        self.assertEqual([d.id for d in result.unallocated], [4, 5])

    def test_needs_more_than_low_battery(self):
        """Test a drone at exactly 30% is not available."""
        drones = [Drone(1, battery=30.0, base=BASE), Drone(2, base=BASE)]
        result = self.strategy.solve(drones, [make_delivery(1, 26, 26)])
        self.assertEqual([a.drone.id for a in result.allocations], [2])
        self.assertEqual(result.metadata["available_drones"], 1)

    def test_rejected_pair_stays_pending(self):
        """Test a delivery the paired drone cannot fly is left unallocated."""
        far = make_delivery(1, 50, 50, priority=Priority.HIGH)
        near = make_delivery(2, 26, 26, priority=Priority.LOW)
        result = self.strategy.solve(self.drones[:2], [far, near])
        self.assertEqual([(a.drone.id, a.delivery_ids) for a in result.allocations], [(2, (2,))])
        self.assertEqual(result.unallocated, [far])

    def test_solve_then_apply(self):
        """Test solving plans only and applying commits the plan."""
        pending = [make_delivery(1, 26, 26)]
        result = self.strategy.solve(self.drones, pending)
        self.assertIs(pending[0].status, DeliveryStatus.PENDING)
        self.assertTrue(all(d.state is DroneState.IDLE for d in self.drones))

        applied = self.strategy.apply(result, now_ms=1000)
        self.assertEqual(len(applied), 1)
        self.assertIs(pending[0].status, DeliveryStatus.EN_ROUTE)
        self.assertIs(self.drones[0].state, DroneState.LOADING)

    def test_summary(self):
        """Test the result summary."""
        result = self.strategy.solve(self.drones, [make_delivery(1, 28, 25)])
        summary = result.get_summary()
        self.assertEqual(summary["strategy"], "Simple Allocation")
        self.assertEqual(summary["num_allocations"], 1)
        self.assertEqual(summary["num_allocated"], 1)
        self.assertEqual(summary["num_unallocated"], 0)
        self.assertAlmostEqual(summary["total_distance"], 6.0)
        self.assertAlmostEqual(summary["average_distance"], 6.0)
        self.assertGreaterEqual(summary["computation_time"], 0)


class TestOptimizedAllocation(unittest.TestCase):
    """Test the grouped strategy."""

    def setUp(self):
        self.drones = [Drone(i, base=BASE) for i in (1, 2)]
        self.pending = [
            make_delivery(1, 30, 30, priority=Priority.HIGH),
            make_delivery(2, 31, 30),
            make_delivery(3, 30, 31),
            make_delivery(4, 15, 15),
        ]

    def test_groups_share_a_drone(self):
        """Test nearby deliveries travel together."""
        result = OptimizedAllocation().solve(self.drones, self.pending)
        self.assertEqual(result.strategy_name, "Optimized Allocation")
        self.assertEqual(sorted(len(a.deliveries) for a in result.allocations), [1, 3])
        self.assertEqual(result.allocated_count, 4)
        self.assertIsInstance(result.metadata["stats"], OptimizationStats)
        self.assertEqual(result.metadata["stats"].total_trips, 2)

    def test_genetic_route_planner(self):
        """Test genetic ordering keeps each group intact."""
        strategy = OptimizedAllocation(DeliveryOptimizer(seed=5), route_planner="genetic")
        result = strategy.solve(self.drones, self.pending)
        self.assertEqual(strategy.get_name(), "Optimized Allocation (genetic routes)")
        self.assertEqual(sorted(i for a in result.allocations for i in a.delivery_ids), [1, 2, 3, 4])
        for allocation in result.allocations:
            expected = DeliveryOptimizer.route_distance(BASE, allocation.deliveries)
            self.assertAlmostEqual(allocation.total_distance, expected)

    def test_unknown_route_planner(self):
        """Test an unknown planner name is rejected."""
        with self.assertRaises(ValueError):
            OptimizedAllocation(route_planner="annealing")

    def test_strategies_share_interface(self):
        """Test both strategies are allocation strategies."""
        self.assertIsInstance(SimpleAllocation(), AllocationStrategy)
        self.assertIsInstance(OptimizedAllocation(), AllocationStrategy)


if __name__ == '__main__':
    unittest.main()
