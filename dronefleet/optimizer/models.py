"""Result types produced by the delivery optimizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dronefleet.mission import Delivery
from dronefleet.vehicles import Drone


@dataclass(frozen=True)
class Allocation:
    """A drone paired with a group of deliveries in stop order."""

    drone: Drone
    deliveries: tuple[Delivery, ...]
    estimated_time: float  # minutes
    total_distance: float
    efficiency: float
    score: float = 0.0

    @property
    def total_weight(self) -> float:
        return sum(delivery.weight for delivery in self.deliveries)

    @property
    def delivery_ids(self) -> tuple[int, ...]:
        return tuple(delivery.id for delivery in self.deliveries)

    def __repr__(self) -> str:
        return (
            f"Allocation(drone={self.drone.id}, deliveries={list(self.delivery_ids)}, "
            f"dist={self.total_distance:.2f})"
        )


@dataclass(frozen=True)
class OptimizationStats:
    """Aggregate figures over a batch of allocations."""

    total_trips: int = 0
    total_distance: float = 0.0
    avg_distance: float = 0.0
    total_time: float = 0.0
    avg_time: float = 0.0
    avg_efficiency: float = 0.0
    deliveries_per_trip: float = 0.0


@dataclass
class AllocationResult:
    """Contains the allocations planned by one strategy invocation."""

    allocations: list[Allocation]
    unallocated: list[Delivery]
    total_distance: float
    computation_time: float
    strategy_name: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def allocated_count(self) -> int:
        return sum(len(allocation.deliveries) for allocation in self.allocations)

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the allocation result."""
        return {
            "strategy": self.strategy_name,
            "num_allocations": len(self.allocations),
            "num_allocated": self.allocated_count,
            "num_unallocated": len(self.unallocated),
            "total_distance": self.total_distance,
            "computation_time": self.computation_time,
            "average_distance": self.total_distance / len(self.allocations) if self.allocations else 0,
        }

    def __repr__(self) -> str:
        return (
            f"AllocationResult(strategy={self.strategy_name}, "
            f"allocations={len(self.allocations)}, "
            f"unallocated={len(self.unallocated)}, "
            f"distance={self.total_distance:.2f})"
        )
