"""Drone delivery fleet: allocation and flight scheduling core.

A ``Simulation`` owns a fleet of ``Drone`` actors and the ``Delivery`` records
submitted to it. Advancing its simulated clock ticks every drone through its
lifecycle and periodically allocates pending deliveries to idle drones.

Example:
    >>> from dronefleet import Simulation, EventRecorder
    >>> recorder = EventRecorder()
    >>> sim = Simulation(events=recorder)
    >>> sim.submit(28, 28, 5.0, "high")
    >>> sim.start()
    >>> sim.run_for(10_000)
"""

from .config import FleetConfig, SimulationConfig
from .errors import DeliveryValidationError, FleetError, IllegalTransitionError
from .events import EventDispatcher, EventKind, EventLevel, EventRecorder, EventSink, FleetEvent, NullEventSink
from .geo import Point, distance
from .log import configure_logging
from .mission import Delivery, DeliveryInfo, DeliveryStatus, Priority
from .optimizer import (
    Allocation,
    AllocationResult,
    AllocationStrategy,
    DeliveryOptimizer,
    OptimizedAllocation,
    SimpleAllocation,
)
from .simulator import Simulation, SimulationStatistics
from .vehicles import Drone, DroneState, DroneStatus

__version__ = "0.1.0"

__all__ = [
    "Allocation",
    "AllocationResult",
    "AllocationStrategy",
    "Delivery",
    "DeliveryInfo",
    "DeliveryOptimizer",
    "DeliveryStatus",
    "DeliveryValidationError",
    "Drone",
    "DroneState",
    "DroneStatus",
    "EventDispatcher",
    "EventKind",
    "EventLevel",
    "EventRecorder",
    "EventSink",
    "FleetConfig",
    "FleetError",
    "FleetEvent",
    "IllegalTransitionError",
    "NullEventSink",
    "OptimizedAllocation",
    "Point",
    "Priority",
    "SimpleAllocation",
    "Simulation",
    "SimulationConfig",
    "SimulationStatistics",
    "configure_logging",
    "distance",
]
