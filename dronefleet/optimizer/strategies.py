"""
Allocation strategies used by the simulation loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
import time

from dronefleet import config
from dronefleet.mission import Delivery
from dronefleet.vehicles import Drone, DroneState

from .models import Allocation, AllocationResult
from .optimizer import DeliveryOptimizer


class AllocationStrategy(ABC):
    """Base class for allocation strategies.

    A strategy plans allocations without mutating drones or deliveries; the
    caller commits them with ``apply``.
    """

    def __init__(self, optimizer: DeliveryOptimizer | None = None):
        self.optimizer = optimizer or DeliveryOptimizer()

    @abstractmethod
    def solve(self, drones: Sequence[Drone], pending: Sequence[Delivery]) -> AllocationResult:
        """
        Plan allocations of pending deliveries onto the fleet.

        Args:
            drones: The whole fleet; strategies pick the drones they can use
            pending: Deliveries waiting for dispatch

        Returns:
            AllocationResult containing the planned allocations
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return the name of the strategy."""
        pass

    def apply(self, result: AllocationResult, now_ms: float = 0.0) -> list[Allocation]:
        """Commit planned allocations, returning the ones the drones accepted."""
        return [
            allocation
            for allocation in result.allocations
            if self.optimizer.apply_allocation(allocation, now_ms)
        ]

    def _result(
        self,
        allocations: list[Allocation],
        pending: Sequence[Delivery],
        start_time: float,
        **metadata,
    ) -> AllocationResult:
        allocated = {delivery.id for allocation in allocations for delivery in allocation.deliveries}
        return AllocationResult(
            allocations=allocations,
            unallocated=[delivery for delivery in pending if delivery.id not in allocated],
            total_distance=sum(allocation.total_distance for allocation in allocations),
            computation_time=time.time() - start_time,
            strategy_name=self.get_name(),
            metadata=metadata,
        )


class SimpleAllocation(AllocationStrategy):
    """One delivery per available drone, highest priority first.

    Available drones are idle with more than the low battery threshold. The
    n-th ranked delivery is offered to the n-th available drone; the pair is
    kept only if the drone can accept it.
    """

    def get_name(self) -> str:
        return "Simple Allocation"

    def solve(self, drones: Sequence[Drone], pending: Sequence[Delivery]) -> AllocationResult:
        start_time = time.time()

        available = [
            drone for drone in drones
            if drone.state is DroneState.IDLE and drone.battery > config.LOW_BATTERY
        ]
        ranked = self.optimizer.sort_by_priority(pending)

        allocations = []
        for drone, delivery in zip(available, ranked):
            if not drone.can_accept(delivery):
                continue
            group = [delivery]
            allocations.append(
                Allocation(
                    drone=drone,
                    deliveries=(delivery,),
                    estimated_time=self.optimizer.estimate_delivery_time(drone, group),
                    total_distance=self.optimizer.total_distance(drone.base, group),
                    efficiency=self.optimizer.calculate_efficiency(drone, group),
                )
            )

        return self._result(allocations, pending, start_time, available_drones=len(available))


class OptimizedAllocation(AllocationStrategy):
    """Grouped multi-stop allocation with scored drone selection.

    With ``route_planner="genetic"`` the stops of every allocated group are
    reordered by the genetic route search instead of the nearest-neighbour
    walk.
    """

    ROUTE_PLANNERS = ("nearest", "genetic")

    def __init__(self, optimizer: DeliveryOptimizer | None = None, route_planner: str = "nearest"):
        super().__init__(optimizer)
        if route_planner not in self.ROUTE_PLANNERS:
            msg = f"Unknown route planner: {route_planner!r}"
            raise ValueError(msg)
        self.route_planner = route_planner

    def get_name(self) -> str:
        if self.route_planner == "genetic":
            return "Optimized Allocation (genetic routes)"
        return "Optimized Allocation"

    def solve(self, drones: Sequence[Drone], pending: Sequence[Delivery]) -> AllocationResult:
        start_time = time.time()

        allocations = self.optimizer.allocate(drones, pending)
        if self.route_planner == "genetic":
            allocations = [self._reorder(allocation) for allocation in allocations]

        return self._result(
            allocations,
            pending,
            start_time,
            route_planner=self.route_planner,
            stats=self.optimizer.optimization_stats(allocations),
        )

    def _reorder(self, allocation: Allocation) -> Allocation:
        route = self.optimizer.genetic_route(allocation.deliveries)
        return Allocation(
            drone=allocation.drone,
            deliveries=tuple(route),
            estimated_time=allocation.estimated_time,
            total_distance=self.optimizer.route_distance(allocation.drone.base, route),
            efficiency=allocation.efficiency,
            score=allocation.score,
        )
