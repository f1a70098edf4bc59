"""Delivery allocation: grouping, drone scoring and route construction.

The full allocation pass runs in four steps:

1. Sort pending deliveries by priority weight, oldest first within a priority.
2. Greedily group deliveries that lie close to a seed delivery, bounded by the
   representative drone capacity and by ``MAX_GROUP_SIZE``.
3. For every group, score each eligible drone and keep the best one. A drone
   takes at most one group per pass.
4. Order the stops of the group with a nearest-neighbour walk from the base.

Bin packing and genetic route ordering are available as secondary tools and
are never used on the default path.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging

import numpy as np

from dronefleet import config
from dronefleet.geo import Point, distance
from dronefleet.mission import Delivery
from dronefleet.vehicles import Drone, DroneState

from .models import Allocation, OptimizationStats

logger = logging.getLogger(__name__)

GROUP_RADIUS = 5.0
MAX_GROUP_SIZE = 3

# Drone score weights
SCORE_BATTERY = 0.5
SCORE_EFFICIENCY = 0.3
SCORE_DISTANCE = 2.0
SCORE_GROUP_SIZE = 10.0
SCORE_PRIORITY = 5.0
SCORE_UTILIZATION = 0.2

# Delivery time estimate, minutes
STOP_MINUTES = 1.0
LOADING_MINUTES = 2.0

# Genetic route ordering
POPULATION_SIZE = 50
GENERATIONS = 100
CROSSOVER_RATE = 0.7
FITNESS_BASE = 1000.0


def group_weight(group: Iterable[Delivery]) -> float:
    return sum(delivery.weight for delivery in group)


class DeliveryOptimizer:
    """Assigns pending deliveries to idle drones.

    Attributes:
        base (Point): Base used by routines that are not tied to a drone
            (genetic route fitness).
        rng (np.random.Generator): Source of randomness for genetic ordering.
    """

    def __init__(self, base: Point = config.BASE_POSITION, seed: int | None = None):
        self.base = base
        self.rng = np.random.default_rng(seed)

    # Main allocation pass

    def allocate(self, drones: Sequence[Drone], pending: Sequence[Delivery]) -> list[Allocation]:
        """Plan allocations of ``pending`` deliveries onto ``drones``.

        Nothing is mutated; use ``apply_allocation`` to commit a result.
        Groups for which no drone qualifies are skipped and stay pending.

        Returns:
            list[Allocation]: One allocation per matched group, in group order.
        """
        if not pending or not drones:
            return []

        ordered = self.sort_by_priority(pending)
        groups = self.group_by_proximity(ordered, drones[0].capacity)

        allocations = []
        taken: set[int] = set()
        for group in groups:
            candidates = [drone for drone in drones if drone.id not in taken]
            best = self.find_best_drone(candidates, group)
            if best is None:
                logger.debug("No drone for group %s", [delivery.id for delivery in group])
                continue
            drone, score = best
            route = self.plan_route(drone.base, group)
            allocations.append(
                Allocation(
                    drone=drone,
                    deliveries=tuple(route),
                    estimated_time=self.estimate_delivery_time(drone, group),
                    total_distance=self.route_distance(drone.base, route),
                    efficiency=self.calculate_efficiency(drone, group),
                    score=score,
                )
            )
            taken.add(drone.id)
            logger.debug("Drone %d <- %s (score %.1f)", drone.id, [d.id for d in route], score)
        return allocations

    def apply_allocation(self, allocation: Allocation, now_ms: float = 0.0) -> bool:
        """Load the drone with the allocated deliveries.

        Returns:
            bool: False if the drone refused the cargo, in which case no
                delivery changed.
        """
        if not allocation.drone.load_packages(allocation.deliveries, now_ms):
            return False
        for delivery in allocation.deliveries:
            delivery.estimated_time = allocation.estimated_time
        return True

    # Steps

    @staticmethod
    def sort_by_priority(deliveries: Iterable[Delivery]) -> list[Delivery]:
        """Highest priority first, then oldest first. The input is not modified."""
        return sorted(deliveries, key=lambda delivery: (-delivery.priority.weight, delivery.created_at))

    @staticmethod
    def group_by_proximity(deliveries: Sequence[Delivery], max_capacity: float) -> list[list[Delivery]]:
        """Partition deliveries into groups around seed deliveries.

        Each group is seeded by the next ungrouped delivery; later deliveries
        closer than ``GROUP_RADIUS`` to the seed join while the group weight
        stays within ``max_capacity``, up to ``MAX_GROUP_SIZE`` members.
        """
        groups = []
        used: set[int] = set()
        for i, seed in enumerate(deliveries):
            if i in used:
                continue
            group = [seed]
            weight = seed.weight
            used.add(i)
            for j in range(i + 1, len(deliveries)):
                if len(group) >= MAX_GROUP_SIZE:
                    break
                if j in used:
                    continue
                candidate = deliveries[j]
                if (
                    distance(seed.location, candidate.location) < GROUP_RADIUS
                    and weight + candidate.weight <= max_capacity
                ):
                    group.append(candidate)
                    weight += candidate.weight
                    used.add(j)
            groups.append(group)
        return groups

    def find_best_drone(self, drones: Iterable[Drone], group: Sequence[Delivery]) -> tuple[Drone, float] | None:
        """Return the highest scoring eligible drone and its score.

        Eligible drones are idle with at least the low battery threshold,
        can carry the whole group, and keep a safety margin of battery after
        flying the route. Ties go to the drone listed first.
        """
        weight = group_weight(group)
        best: tuple[Drone, float] | None = None
        for drone in drones:
            if drone.state is not DroneState.IDLE or drone.battery < config.LOW_BATTERY:
                continue
            if weight > drone.capacity:
                continue
            route_distance = self.total_distance(drone.base, group)
            if route_distance * drone.consumption_rate > drone.battery - config.ROUTE_SAFETY_MARGIN:
                continue
            score = self.calculate_drone_score(drone, group, route_distance)
            if best is None or score > best[1]:
                best = (drone, score)
        return best

    @staticmethod
    def calculate_drone_score(drone: Drone, group: Sequence[Delivery], route_distance: float) -> float:
        utilization = group_weight(group) / drone.capacity * 100.0
        priority = sum(delivery.priority.weight for delivery in group)
        return (
            SCORE_BATTERY * drone.battery
            + SCORE_EFFICIENCY * drone.efficiency
            - SCORE_DISTANCE * route_distance
            + SCORE_GROUP_SIZE * len(group)
            + SCORE_PRIORITY * priority
            + SCORE_UTILIZATION * utilization
        )

    @staticmethod
    def plan_route(start: Point, group: Iterable[Delivery]) -> list[Delivery]:
        """Order stops by repeatedly visiting the nearest unvisited delivery."""
        remaining = list(group)
        route = []
        position = start
        while remaining:
            nearest = min(range(len(remaining)), key=lambda i: distance(position, remaining[i].location))
            stop = remaining.pop(nearest)
            route.append(stop)
            position = stop.location
        return route

    @staticmethod
    def route_distance(start: Point, route: Sequence[Delivery]) -> float:
        """Length of ``start`` -> stops in the given order -> ``start``."""
        if not route:
            return 0.0
        total = 0.0
        position = start
        for stop in route:
            total += distance(position, stop.location)
            position = stop.location
        return total + distance(position, start)

    def total_distance(self, start: Point, group: Sequence[Delivery]) -> float:
        """Length of the nearest-neighbour route through ``group``."""
        return self.route_distance(start, self.plan_route(start, group))

    def estimate_delivery_time(self, drone: Drone, group: Sequence[Delivery]) -> float:
        """Estimated trip duration in minutes."""
        flying = self.total_distance(drone.base, group) / drone.speed * 60.0
        return flying + STOP_MINUTES * len(group) + LOADING_MINUTES

    def calculate_efficiency(self, drone: Drone, group: Sequence[Delivery]) -> float:
        """Mean of capacity utilisation and a distance penalty score, in percent."""
        utilization = group_weight(group) / drone.capacity * 100.0
        distance_score = max(0.0, 100.0 - 2.0 * self.total_distance(drone.base, group))
        return (utilization + distance_score) / 2.0

    # Secondary algorithms

    @staticmethod
    def bin_packing(deliveries: Iterable[Delivery], capacity: float) -> list[list[Delivery]]:
        """First-fit decreasing packing of deliveries into capacity-bounded bins."""
        bins: list[list[Delivery]] = []
        for delivery in sorted(deliveries, key=lambda d: d.weight, reverse=True):
            for bin_ in bins:
                if group_weight(bin_) + delivery.weight <= capacity:
                    bin_.append(delivery)
                    break
            else:
                bins.append([delivery])
        return bins

    def genetic_route(
        self,
        deliveries: Sequence[Delivery],
        population_size: int = POPULATION_SIZE,
        generations: int = GENERATIONS,
    ) -> list[Delivery]:
        """Search for a good stop ordering with a simple genetic algorithm.

        The top half of each generation survives; the rest is refilled by
        crossover or a single swap mutation of random survivors. The result is
        a heuristic, not an optimum.
        """
        if len(deliveries) < 2:
            return list(deliveries)
        if population_size < 2:
            msg = f"Population size must be at least 2: {population_size}"
            raise ValueError(msg)

        population = [self.shuffle(deliveries) for _ in range(population_size)]
        elite_size = population_size // 2
        for _ in range(generations):
            ranked = sorted(population, key=self.route_fitness, reverse=True)
            elite = ranked[:elite_size]
            population = list(elite)
            while len(population) < population_size:
                if self.rng.random() < CROSSOVER_RATE:
                    first = elite[self.rng.integers(len(elite))]
                    second = elite[self.rng.integers(len(elite))]
                    population.append(self.crossover(first, second))
                else:
                    parent = elite[self.rng.integers(len(elite))]
                    population.append(self.mutate(parent))

        return max(population, key=self.route_fitness)

    def route_fitness(self, route: Sequence[Delivery]) -> float:
        """Higher for shorter routes that serve high priorities early."""
        bonus = sum(stop.priority.weight * (len(route) - i) for i, stop in enumerate(route))
        return FITNESS_BASE - self.route_distance(self.base, route) + bonus

    @staticmethod
    def crossover(first: Sequence[Delivery], second: Sequence[Delivery]) -> list[Delivery]:
        """First half of ``first`` followed by the rest in ``second`` order."""
        child = list(first[: len(first) // 2])
        seen = {delivery.id for delivery in child}
        child.extend(delivery for delivery in second if delivery.id not in seen)
        return child

    def mutate(self, route: Sequence[Delivery]) -> list[Delivery]:
        """Swap two random positions of a copy of ``route``."""
        mutated = list(route)
        if len(mutated) < 2:
            return mutated
        i, j = self.rng.integers(len(mutated), size=2)
        mutated[i], mutated[j] = mutated[j], mutated[i]
        return mutated

    def shuffle(self, deliveries: Sequence[Delivery]) -> list[Delivery]:
        return [deliveries[i] for i in self.rng.permutation(len(deliveries))]

    @staticmethod
    def optimization_stats(allocations: Sequence[Allocation]) -> OptimizationStats:
        if not allocations:
            return OptimizationStats()
        count = len(allocations)
        total_distance = sum(allocation.total_distance for allocation in allocations)
        total_time = sum(allocation.estimated_time for allocation in allocations)
        efficiency = sum(allocation.efficiency for allocation in allocations)
        stops = sum(len(allocation.deliveries) for allocation in allocations)
        return OptimizationStats(
            total_trips=count,
            total_distance=total_distance,
            avg_distance=total_distance / count,
            total_time=total_time,
            avg_time=total_time / count,
            avg_efficiency=efficiency / count,
            deliveries_per_trip=stops / count,
        )
