"""Global defaults and configuration objects for the fleet simulation.

Module-level constants describe the operating area, the fixed timings of the
drone lifecycle and the allocator thresholds. The two dataclasses bundle the
values a caller usually wants to change when building a ``Simulation``.

Example:
    >>> from dronefleet.config import FleetConfig, SimulationConfig
    >>> config = SimulationConfig(fleet=FleetConfig(count=5, capacity=12.0))
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dronefleet.geo import Point

# Operating area
AREA_MIN = 0.0
AREA_MAX = 50.0
BASE_POSITION = Point(25.0, 25.0)

# Delivery requests
MAX_DELIVERY_WEIGHT = 10.0  # kg, exclusive lower bound is 0

# Drone defaults
DEFAULT_CAPACITY = 10.0  # kg
DEFAULT_RANGE = 20.0  # km
DEFAULT_BATTERY = 100.0  # %
DEFAULT_SPEED = 50.0  # km/h
DEFAULT_CONSUMPTION_RATE = 2.0  # % per km
DEFAULT_RECHARGE_RATE = 20.0  # % per simulated second

# Lifecycle timings (simulated milliseconds)
LOADING_DURATION_MS = 500.0
COLLECTING_DURATION_MS = 1000.0
DELIVERING_DURATION_MS = 1000.0

# Thresholds
ARRIVAL_THRESHOLD = 0.5
CRITICAL_BATTERY = 15.0
LOW_BATTERY = 30.0
ACCEPT_SAFETY_MARGIN = 15.0
ROUTE_SAFETY_MARGIN = 10.0

# Allocation cadence
ALLOCATION_INTERVAL_MS = 1000.0

# Fleet placement rings around the base
INITIAL_RING_RADIUS = 2.0
ADDED_RING_RADIUS = 3.0


@dataclass
class FleetConfig:
    """Fleet-wide drone parameters applied by ``Simulation.configure``."""

    count: int = 3
    capacity: float = DEFAULT_CAPACITY
    range_km: float = DEFAULT_RANGE
    battery: float = DEFAULT_BATTERY

    def __post_init__(self):
        if not isinstance(self.count, int) or isinstance(self.count, bool):
            msg = f"Drone count must be an integer: {self.count!r}"
            raise ValueError(msg)
        if self.count < 0:
            msg = f"Invalid drone count: {self.count}"
            raise ValueError(msg)
        if self.capacity <= 0 or self.range_km <= 0:
            msg = f"Capacity and range must be positive: {self.capacity}, {self.range_km}"
            raise ValueError(msg)
        if not 0.0 <= self.battery <= 100.0:
            msg = f"Invalid battery percentage: {self.battery}"
            raise ValueError(msg)


@dataclass
class SimulationConfig:
    """Configuration for a ``Simulation`` run.

    Attributes:
        fleet (FleetConfig): Initial fleet size and drone parameters.
        base (Point): Position every drone departs from and returns to.
        allocation_interval_ms (float): Cadence of the periodic allocation pass.
        seed (int | None): Seed for random delivery generation.
    """

    fleet: FleetConfig = field(default_factory=FleetConfig)
    base: Point = BASE_POSITION
    allocation_interval_ms: float = ALLOCATION_INTERVAL_MS
    seed: int | None = None
