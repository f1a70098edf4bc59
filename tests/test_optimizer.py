"""
Tests for the delivery optimizer.
"""

import unittest

from dronefleet.geo import Point
from dronefleet.mission import Delivery, DeliveryStatus, Priority
from dronefleet.optimizer import Allocation, DeliveryOptimizer, OptimizationStats
from dronefleet.vehicles import Drone, DroneState

BASE = Point(25.0, 25.0)


def make_delivery(id, x, y, weight=2.0, priority=Priority.MEDIUM, created_at=0.0):
    return Delivery(id, Point(x, y), weight, priority, created_at=created_at)


class TestPrioritySort(unittest.TestCase):
    """Test priority ordering."""

    def test_high_medium_low(self):
        """Test [low, high, medium] sorts to [high, medium, low]."""
        deliveries = [
            make_delivery(1, 30, 30, priority=Priority.LOW, created_at=0),
            make_delivery(2, 30, 30, priority=Priority.HIGH, created_at=1),
            make_delivery(3, 30, 30, priority=Priority.MEDIUM, created_at=2),
        ]
        ordered = DeliveryOptimizer.sort_by_priority(deliveries)
        self.assertEqual([d.priority for d in ordered], [Priority.HIGH, Priority.MEDIUM, Priority.LOW])
        self.assertEqual([d.id for d in deliveries], [1, 2, 3])

    def test_ties_oldest_first(self):
        """Test equal priorities are served first-in first-out."""
        deliveries = [
            make_delivery(1, 30, 30, priority=Priority.HIGH, created_at=500),
            make_delivery(2, 30, 30, priority=Priority.HIGH, created_at=100),
            make_delivery(3, 30, 30, priority=Priority.LOW, created_at=0),
        ]
        ordered = DeliveryOptimizer.sort_by_priority(deliveries)
        self.assertEqual([d.id for d in ordered], [2, 1, 3])


class TestGrouping(unittest.TestCase):
    """Test proximity grouping."""

    def test_groups_nearby_deliveries(self):
        """Test nearby deliveries are grouped up to three per group."""
        deliveries = [
            make_delivery(1, 30, 30),
            make_delivery(2, 31, 31),
            make_delivery(3, 32, 30),
            make_delivery(4, 33, 31),
        ]
        groups = DeliveryOptimizer.group_by_proximity(deliveries, 10)
        self.assertEqual([[d.id for d in g] for g in groups], [[1, 2, 3], [4]])

    def test_far_deliveries_are_separate(self):
        """Test deliveries 5 or more units from the seed start their own group."""
        deliveries = [make_delivery(1, 10, 10), make_delivery(2, 15, 10), make_delivery(3, 12, 10)]
        groups = DeliveryOptimizer.group_by_proximity(deliveries, 10)
        self.assertEqual([[d.id for d in g] for g in groups], [[1, 3], [2]])

    def test_capacity_bounds_group(self):
        """Test a group never exceeds the capacity."""
        deliveries = [make_delivery(1, 30, 30, 6), make_delivery(2, 31, 30, 5), make_delivery(3, 31, 31, 4)]
        groups = DeliveryOptimizer.group_by_proximity(deliveries, 10)
        self.assertEqual([[d.id for d in g] for g in groups], [[1, 3], [2]])
        for group in groups:
            self.assertLessEqual(sum(d.weight for d in group), 10)


class TestRoutes(unittest.TestCase):
    """Test route construction and estimates."""

    def test_nearest_neighbour_route(self):
        """Test stops are visited nearest first."""
        deliveries = [make_delivery(1, 10, 0), make_delivery(2, 1, 0), make_delivery(3, 5, 0)]
        route = DeliveryOptimizer.plan_route(Point(0, 0), deliveries)
        self.assertEqual([d.id for d in route], [2, 3, 1])
        self.assertAlmostEqual(DeliveryOptimizer.route_distance(Point(0, 0), route), 20.0)

    def test_empty_route(self):
        """Test an empty route has no length."""
        self.assertEqual(DeliveryOptimizer.route_distance(BASE, []), 0.0)
        self.assertEqual(DeliveryOptimizer.plan_route(BASE, []), [])

    def test_estimate_delivery_time(self):
        """Test flight minutes plus one minute per stop plus two for loading."""
        drone = Drone(1, base=BASE)
        group = [make_delivery(1, 28, 25)]
        self.assertAlmostEqual(DeliveryOptimizer().estimate_delivery_time(drone, group), 10.2)

    def test_calculate_efficiency(self):
        """Test efficiency averages utilisation and the distance score."""
        drone = Drone(1, capacity=10, base=BASE)
        group = [make_delivery(1, 28, 25, weight=5)]
        self.assertAlmostEqual(DeliveryOptimizer().calculate_efficiency(drone, group), 69.0)


class TestDroneSelection(unittest.TestCase):
    """Test drone scoring and selection."""

    def test_score(self):
        """Test the weighted score of a drone for a group."""
        drone = Drone(1, capacity=10, battery=100, base=BASE)
        group = [make_delivery(1, 28, 25, weight=5, priority=Priority.HIGH)]
        score = DeliveryOptimizer.calculate_drone_score(drone, group, 6.0)
        self.assertAlmostEqual(score, 50 + 30 - 12 + 10 + 15 + 10)

    def test_prefers_fuller_battery(self):
        """Test the drone with more battery wins."""
        drones = [Drone(1, battery=60, base=BASE), Drone(2, battery=95, base=BASE)]
        best = DeliveryOptimizer().find_best_drone(drones, [make_delivery(1, 28, 25)])
        self.assertEqual(best[0].id, 2)

    def test_skips_ineligible_drones(self):
        """Test busy, low battery and undersized drones are never chosen."""
        busy = Drone(1, base=BASE)
        busy.load_packages([make_delivery(99, 26, 25)])
        low = Drone(2, battery=29, base=BASE)
        small = Drone(3, capacity=1, base=BASE)
        optimizer = DeliveryOptimizer()
        self.assertIsNone(optimizer.find_best_drone([busy, low, small], [make_delivery(1, 28, 25)]))

    def test_route_battery_margin(self):
        """Test a route whose battery cost eats into the margin is refused."""
        drone = Drone(1, battery=40, base=BASE)
        # 16 units round trip costs 32%, leaving less than the 10% margin
        group = [make_delivery(1, 33, 25)]
        self.assertIsNone(DeliveryOptimizer().find_best_drone([drone], group))


class TestAllocate(unittest.TestCase):
    """Test the full allocation pass."""

    def setUp(self):
        self.optimizer = DeliveryOptimizer()
        self.drones = [Drone(i, base=BASE) for i in (1, 2, 3)]
        self.pending = [
            make_delivery(1, 28, 28, 3, Priority.LOW, 0),
            make_delivery(2, 29, 28, 3, Priority.HIGH, 1),
            make_delivery(3, 20, 20, 4, Priority.MEDIUM, 2),
            make_delivery(4, 21, 19, 2, Priority.HIGH, 3),
        ]

    def test_allocate_groups(self):
        """Test groups are formed around the highest priority seeds."""
        allocations = self.optimizer.allocate(self.drones, self.pending)
        groups = sorted(sorted(a.delivery_ids) for a in allocations)
        self.assertEqual(groups, [[1, 2], [3, 4]])
        self.assertEqual(len({a.drone.id for a in allocations}), 2)
        for allocation in allocations:
            self.assertLessEqual(allocation.total_weight, allocation.drone.capacity)
            self.assertGreater(allocation.total_distance, 0)

    def test_allocate_is_deterministic(self):
        """Test repeated planning on unchanged state gives the same result."""
        first = self.optimizer.allocate(self.drones, self.pending)
        second = self.optimizer.allocate(self.drones, self.pending)
        self.assertEqual(
            [(a.drone.id, a.delivery_ids) for a in first],
            [(a.drone.id, a.delivery_ids) for a in second],
        )

    def test_allocate_does_not_mutate(self):
        """Test planning leaves drones and deliveries untouched."""
        self.optimizer.allocate(self.drones, self.pending)
        self.assertTrue(all(d.state is DroneState.IDLE for d in self.drones))
        self.assertTrue(all(d.status is DeliveryStatus.PENDING for d in self.pending))

    def test_one_group_per_drone(self):
        """Test a single drone takes only one group per pass."""
        allocations = self.optimizer.allocate(self.drones[:1], self.pending)
        self.assertEqual(len(allocations), 1)

    def test_allocate_empty(self):
        """Test nothing is planned without drones or deliveries."""
        self.assertEqual(self.optimizer.allocate([], self.pending), [])
        self.assertEqual(self.optimizer.allocate(self.drones, []), [])

    def test_apply_allocation(self):
        """Test applying loads the drone and marks the deliveries en route."""
        allocation = self.optimizer.allocate(self.drones, self.pending)[0]
        self.assertTrue(self.optimizer.apply_allocation(allocation, now_ms=10))
        self.assertIs(allocation.drone.state, DroneState.LOADING)
        self.assertEqual(allocation.drone.cargo, allocation.deliveries)
        self.assertEqual(allocation.drone.destination, allocation.deliveries[0].location)
        for delivery in allocation.deliveries:
            self.assertIs(delivery.status, DeliveryStatus.EN_ROUTE)
            self.assertEqual(delivery.estimated_time, allocation.estimated_time)
        self.assertFalse(self.optimizer.apply_allocation(allocation))


class TestSecondaryAlgorithms(unittest.TestCase):
    """Test bin packing and genetic route ordering."""

    def test_bin_packing(self):
        """Test first-fit decreasing packing."""
        deliveries = [make_delivery(i, 30, 30, w) for i, w in enumerate([3, 8, 4, 2, 5])]
        bins = DeliveryOptimizer.bin_packing(deliveries, 10)
        self.assertEqual([[d.weight for d in b] for b in bins], [[8, 2], [5, 4], [3]])

    def test_crossover(self):
        """Test the child keeps the first half of one parent and the order of the other."""
        a, b, c, d = (make_delivery(i, 30, 30) for i in range(4))
        child = DeliveryOptimizer.crossover([a, b, c, d], [d, c, b, a])
        self.assertEqual(child, [a, b, d, c])

    def test_mutate_keeps_members(self):
        """Test a mutation is a permutation and leaves its input alone."""
        route = [make_delivery(i, 30, 30) for i in range(5)]
        mutated = DeliveryOptimizer(seed=3).mutate(route)
        self.assertEqual(sorted(d.id for d in mutated), [0, 1, 2, 3, 4])
        self.assertEqual([d.id for d in route], [0, 1, 2, 3, 4])

    def test_genetic_route_is_permutation(self):
        """Test the genetic search returns every stop exactly once."""
        deliveries = [make_delivery(i, 20 + i, 30 - i, priority=Priority(i % 3 + 1)) for i in range(6)]
        route = DeliveryOptimizer(seed=1).genetic_route(deliveries, population_size=20, generations=10)
        self.assertEqual(sorted(d.id for d in route), list(range(6)))

    def test_genetic_route_is_seeded(self):
        """Test the same seed reproduces the same ordering."""
        deliveries = [make_delivery(i, 10 + 5 * i, 40 - 3 * i) for i in range(5)]
        first = DeliveryOptimizer(seed=42).genetic_route(deliveries, population_size=10, generations=5)
        second = DeliveryOptimizer(seed=42).genetic_route(deliveries, population_size=10, generations=5)
        self.assertEqual([d.id for d in first], [d.id for d in second])

    def test_genetic_route_small_inputs(self):
        """Test trivial inputs are returned as they are."""
        single = [make_delivery(1, 30, 30)]
        self.assertEqual(DeliveryOptimizer().genetic_route(single), single)
        self.assertEqual(DeliveryOptimizer().genetic_route([]), [])

    def test_route_fitness_prefers_short_routes(self):
        """Test a detour lowers fitness."""
        near, far = make_delivery(1, 26, 25), make_delivery(2, 35, 25)
        optimizer = DeliveryOptimizer(base=BASE)
        self.assertGreater(optimizer.route_fitness([near]), optimizer.route_fitness([far]))

    def test_route_fitness_rewards_early_priority(self):
        """Test serving the high priority stop first scores higher on equal distance."""
        high = make_delivery(1, 26, 25, priority=Priority.HIGH)
        low = make_delivery(2, 35, 25, priority=Priority.LOW)
        optimizer = DeliveryOptimizer(base=BASE)
        self.assertGreater(optimizer.route_fitness([high, low]), optimizer.route_fitness([low, high]))


class TestOptimizationStats(unittest.TestCase):
    """Test aggregate statistics."""

    def test_stats(self):
        """Test totals and averages over allocations."""
        drone = Drone(1)
        allocations = [
            Allocation(drone, (make_delivery(1, 30, 30),), 10.0, 8.0, 60.0),
            Allocation(drone, (make_delivery(2, 30, 30), make_delivery(3, 30, 30)), 20.0, 12.0, 80.0),
        ]
        stats = DeliveryOptimizer.optimization_stats(allocations)
        self.assertEqual(stats.total_trips, 2)
        self.assertEqual(stats.total_distance, 20.0)
        self.assertEqual(stats.avg_distance, 10.0)
        self.assertEqual(stats.total_time, 30.0)
        self.assertEqual(stats.avg_time, 15.0)
        self.assertEqual(stats.avg_efficiency, 70.0)
        self.assertEqual(stats.deliveries_per_trip, 1.5)

    def test_empty_stats(self):
        """Test statistics of no allocations are zero."""
        self.assertEqual(DeliveryOptimizer.optimization_stats([]), OptimizationStats())


if __name__ == '__main__':
    unittest.main()
