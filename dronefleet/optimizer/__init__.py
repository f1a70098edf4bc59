"""Delivery allocation.

Components:
    DeliveryOptimizer: Priority sort, proximity grouping, drone scoring,
        nearest-neighbour routes, bin packing and genetic route ordering
    Allocation / AllocationResult / OptimizationStats: Planned results
    AllocationStrategy: Base class for pluggable strategies
    SimpleAllocation: One delivery per available drone
    OptimizedAllocation: Grouped multi-stop allocation
"""

from .models import Allocation, AllocationResult, OptimizationStats
from .optimizer import DeliveryOptimizer
from .strategies import AllocationStrategy, OptimizedAllocation, SimpleAllocation

__all__ = [
    "Allocation",
    "AllocationResult",
    "AllocationStrategy",
    "DeliveryOptimizer",
    "OptimizationStats",
    "OptimizedAllocation",
    "SimpleAllocation",
]
