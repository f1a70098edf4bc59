"""Fleet simulation aggregate.

``Simulation`` owns the fleet, the delivery records and the simulated clock.
Collaborators talk to it through a small surface: they configure the fleet,
submit deliveries, advance time, read snapshots and subscribe to events.

Every public method holds one re-entrant lock, so a UI or network thread can
submit deliveries while another thread drives ``advance``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import logging
import math
import threading

import numpy as np
import pandas as pd

from dronefleet import config
from dronefleet.config import FleetConfig, SimulationConfig
from dronefleet.errors import DeliveryValidationError
from dronefleet.events import (
    EventDispatcher,
    EventHandler,
    EventKind,
    EventLevel,
    EventSink,
    FleetEvent,
)
from dronefleet.geo import Point
from dronefleet.mission import Delivery, DeliveryInfo, DeliveryStatus, Priority, validate_request
from dronefleet.optimizer import Allocation, AllocationStrategy, DeliveryOptimizer, SimpleAllocation
from dronefleet.vehicles import Drone, DroneState, DroneStatus

logger = logging.getLogger(__name__)

RANDOM_MARGIN = 2.5
RANDOM_MIN_WEIGHT = 1.0


@dataclass(frozen=True)
class SimulationStatistics:
    """Fleet-wide figures at a point in simulated time.

    Attributes:
        deliveries_completed (int): Deliveries in status DELIVERED.
        deliveries_open (int): Deliveries not yet delivered.
        total_distance (float): Sum of the distance flown by every drone.
        total_trips (int): Sum of the trips of every drone.
        avg_delivery_time_ms (float): Mean submission-to-delivery time.
        fleet_efficiency (float): Mean drone efficiency, in percent.
        best_drone_id (int | None): Drone with the most deliveries.
    """

    deliveries_completed: int
    deliveries_open: int
    total_distance: float
    total_trips: int
    avg_delivery_time_ms: float
    fleet_efficiency: float
    best_drone_id: int | None


class Simulation:
    """Drone delivery fleet driven by a simulated clock.

    Attributes:
        config (SimulationConfig): Configuration the simulation was built with.
        fleet_config (FleetConfig): Fleet parameters currently applied.
        strategy (AllocationStrategy): Allocation used by the live loop.
        drones (list[Drone]): Active fleet, ids 1..n.
        deliveries (list[Delivery]): Every delivery of the run.
        time_ms (float): Simulated time since the last reset.
        running (bool): ``advance`` only moves time while running.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        events: EventSink | None = None,
        strategy: AllocationStrategy | None = None,
    ):
        self.config = config or SimulationConfig()
        self.fleet_config = self.config.fleet
        self.base = self.config.base
        self.strategy = strategy or SimpleAllocation(DeliveryOptimizer(self.base, self.config.seed))
        self.rng = np.random.default_rng(self.config.seed)

        self.events = EventDispatcher()
        if events is not None:
            self.events.register(events.emit)

        self._lock = threading.RLock()
        self.running = False
        self.time_ms = 0.0
        self.deliveries: list[Delivery] = []
        self._next_delivery_id = 1
        self.drones: list[Drone] = []
        self._build_fleet()

    # Events

    def register_event_handler(self, handler: EventHandler, kind: EventKind | None = None) -> None:
        """Call ``handler`` for every event of ``kind``, or for all events."""
        self.events.register(handler, kind)

    def _emit(
        self,
        kind: EventKind,
        message: str,
        level: EventLevel = EventLevel.INFO,
        drone_id: int | None = None,
        delivery_id: int | None = None,
    ) -> None:
        self.events.emit(
            FleetEvent(
                kind=kind,
                message=message,
                level=level,
                time_ms=self.time_ms,
                drone_id=drone_id,
                delivery_id=delivery_id,
            )
        )

    # Fleet

    def _ring_position(self, index: int, count: int, radius: float) -> Point:
        angle = index * 2.0 * math.pi / count
        return Point(self.base.x + math.cos(angle) * radius, self.base.y + math.sin(angle) * radius)

    def _make_drone(self, index: int, position: Point) -> Drone:
        return Drone(
            id=index + 1,
            capacity=self.fleet_config.capacity,
            range_km=self.fleet_config.range_km,
            battery=self.fleet_config.battery,
            base=self.base,
            position=position,
            events=self.events,
            rng=self.rng,
        )

    def _build_fleet(self) -> None:
        count = self.fleet_config.count
        self.drones = []
        for i in range(count):
            position = self.base
            if count > 1:
                position = self._ring_position(i, count, config.INITIAL_RING_RADIUS)
            self.drones.append(self._make_drone(i, position))
        logger.info("Fleet initialised with %d drone(s)", count)

    def configure(
        self,
        count: int,
        capacity: float = config.DEFAULT_CAPACITY,
        range_km: float = config.DEFAULT_RANGE,
        battery: float = config.DEFAULT_BATTERY,
    ) -> FleetConfig:
        """Resize the fleet and apply drone parameters.

        Existing drones keep their operational state. Added drones are placed
        on a ring around the base; removed drones release their cargo back to
        the pending pool. Capacity and range apply to every drone immediately,
        the battery level only to idle drones.

        Raises:
            ValueError: If a parameter is out of range. Nothing changes then.
        """
        fleet_config = FleetConfig(count=count, capacity=capacity, range_km=range_km, battery=battery)
        with self._lock:
            self.fleet_config = fleet_config
            existing = len(self.drones)
            if count > existing:
                for i in range(existing, count):
                    position = self._ring_position(i, count, config.ADDED_RING_RADIUS)
                    self.drones.append(self._make_drone(i, position))
            elif count < existing:
                for drone in self.drones[count:]:
                    drone.release_cargo(self.time_ms)
                del self.drones[count:]

            for drone in self.drones:
                drone.reconfigure(capacity, range_km, battery)

            self._emit(EventKind.FLEET_CONFIGURED, f"Configuration updated: {count} drone(s)")
            return fleet_config

    # Run control

    @property
    def is_running(self) -> bool:
        return self.running

    def start(self) -> None:
        """Start the clock and try to allocate pending deliveries at once."""
        with self._lock:
            if self.running:
                return
            self.running = True
            self._emit(EventKind.SIMULATION_STARTED, "Simulation started", EventLevel.SUCCESS)
            self._allocate()

    def pause(self) -> None:
        with self._lock:
            self.running = False
            self._emit(EventKind.SIMULATION_PAUSED, "Simulation paused", EventLevel.WARNING)

    def reset(self) -> None:
        """Stop, drop every delivery and rebuild the fleet from the current configuration."""
        with self._lock:
            self.running = False
            self.time_ms = 0.0
            self.deliveries = []
            self._next_delivery_id = 1
            self._build_fleet()
            self._emit(EventKind.SIMULATION_RESET, "Simulation reset")

    # Submission

    def _create_delivery(self, x: float, y: float, weight: float, priority: Priority) -> Delivery:
        delivery = Delivery(
            id=self._next_delivery_id,
            location=Point(float(x), float(y)),
            weight=float(weight),
            priority=priority,
            created_at=self.time_ms,
        )
        self._next_delivery_id += 1
        self.deliveries.append(delivery)
        return delivery

    def submit(self, x: float, y: float, weight: float, priority: Priority | str = Priority.MEDIUM) -> Delivery:
        """Register a new delivery request.

        Raises:
            DeliveryValidationError: If the location, weight or priority is
                invalid. No state changes in that case.
        """
        validate_request(x, y, weight)
        priority = Priority.parse(priority)
        with self._lock:
            delivery = self._create_delivery(x, y, weight, priority)
            self._emit(
                EventKind.DELIVERY_SUBMITTED,
                f"New delivery #{delivery.id} added ({priority.name.lower()})",
                EventLevel.SUCCESS,
                delivery_id=delivery.id,
            )
            if self.running:
                self._allocate()
            return delivery

    def submit_batch(self, requests: Iterable[Sequence]) -> list[Delivery]:
        """Register several requests given as ``(x, y, weight[, priority])``.

        Every request is validated before any is created, so an invalid entry
        rejects the whole batch.

        Raises:
            DeliveryValidationError: If a request is malformed or invalid.
        """
        parsed = []
        for request in requests:
            try:
                x, y, weight, *rest = request
            except (TypeError, ValueError):
                rest = None
            if rest is None or len(rest) > 1:
                raise DeliveryValidationError("request", request, "expected (x, y, weight[, priority])")
            validate_request(x, y, weight)
            parsed.append((x, y, weight, Priority.parse(rest[0] if rest else Priority.MEDIUM)))

        with self._lock:
            created = [self._create_delivery(*request) for request in parsed]
            for delivery in created:
                self._emit(
                    EventKind.DELIVERY_SUBMITTED,
                    f"New delivery #{delivery.id} added ({delivery.priority.name.lower()})",
                    EventLevel.SUCCESS,
                    delivery_id=delivery.id,
                )
            if created and self.running:
                self._allocate()
            return created

    def generate_random_deliveries(self, count: int = 10) -> list[Delivery]:
        """Create ``count`` deliveries spread over the grid with random weights."""
        low = config.AREA_MIN + RANDOM_MARGIN
        high = config.AREA_MAX - RANDOM_MARGIN
        with self._lock:
            xs = self.rng.uniform(low, high, size=count)
            ys = self.rng.uniform(low, high, size=count)
            weights = self.rng.uniform(RANDOM_MIN_WEIGHT, config.MAX_DELIVERY_WEIGHT, size=count)
            priorities = self.rng.integers(int(Priority.LOW), int(Priority.HIGH) + 1, size=count)
            return self.submit_batch(
                (x, y, w, Priority(int(p))) for x, y, w, p in zip(xs, ys, weights, priorities)
            )

    # Clock

    def advance(self, delta_ms: float) -> bool:
        """Advance simulated time by ``delta_ms`` and tick every drone.

        An allocation pass follows whenever the clock crosses an allocation
        interval boundary while deliveries are pending and a drone is
        available.

        Returns:
            bool: False if the simulation is paused and time did not move.

        Raises:
            ValueError: If ``delta_ms`` is negative.
        """
        if delta_ms < 0:
            msg = f"Time step must be non-negative: {delta_ms}"
            raise ValueError(msg)
        with self._lock:
            if not self.running:
                return False
            previous = self.time_ms
            self.time_ms += delta_ms
            for drone in self.drones:
                drone.update(delta_ms, self.time_ms)

            interval = self.config.allocation_interval_ms
            crossed = math.floor(self.time_ms / interval) > math.floor(previous / interval)
            if crossed and self._has_pending() and self.available_drones():
                self._allocate()
            return True

    def run_for(self, duration_ms: float, step_ms: float = 16.0) -> int:
        """Advance in steps of ``step_ms`` until ``duration_ms`` has elapsed.

        Returns:
            int: Number of ticks performed.
        """
        if step_ms <= 0:
            msg = f"Step must be positive: {step_ms}"
            raise ValueError(msg)
        ticks = 0
        remaining = duration_ms
        while remaining > 0 and self.running:
            step = min(step_ms, remaining)
            self.advance(step)
            remaining -= step
            ticks += 1
        return ticks

    def allocate_now(self) -> list[Allocation]:
        """Run one allocation pass regardless of the clock."""
        with self._lock:
            return self._allocate()

    def _allocate(self) -> list[Allocation]:
        pending = self.pending_deliveries()
        if not pending:
            return []
        result = self.strategy.solve(self.drones, pending)
        applied = self.strategy.apply(result, self.time_ms)
        for allocation in applied:
            ids = ", ".join(f"#{delivery.id}" for delivery in allocation.deliveries)
            self._emit(
                EventKind.DELIVERY_ASSIGNED,
                f"Drone {allocation.drone.id} -> delivery {ids}",
                drone_id=allocation.drone.id,
                delivery_id=allocation.deliveries[0].id,
            )
        if applied:
            self._emit(
                EventKind.DRONES_DISPATCHED,
                f"{len(applied)} drone(s) dispatched for collection",
                EventLevel.SUCCESS,
            )
        logger.debug(
            "Allocation pass at %.0f ms: %d applied, %d pending",
            self.time_ms,
            len(applied),
            len(pending) - sum(len(allocation.deliveries) for allocation in applied),
        )
        return applied

    # Read accessors

    def _has_pending(self) -> bool:
        return any(delivery.is_awaiting_dispatch for delivery in self.deliveries)

    def pending_deliveries(self) -> list[Delivery]:
        """Deliveries waiting for dispatch, in submission order."""
        with self._lock:
            return [delivery for delivery in self.deliveries if delivery.is_awaiting_dispatch]

    def available_drones(self) -> list[Drone]:
        """Idle drones with more than the low battery threshold."""
        with self._lock:
            return [
                drone for drone in self.drones
                if drone.state is DroneState.IDLE and drone.battery > config.LOW_BATTERY
            ]

    def get_drone(self, drone_id: int) -> Drone | None:
        with self._lock:
            return next((drone for drone in self.drones if drone.id == drone_id), None)

    def get_delivery(self, delivery_id: int) -> Delivery | None:
        with self._lock:
            return next((delivery for delivery in self.deliveries if delivery.id == delivery_id), None)

    def drone_snapshots(self) -> list[DroneStatus]:
        with self._lock:
            return [drone.get_status() for drone in self.drones]

    def delivery_snapshots(self) -> list[DeliveryInfo]:
        with self._lock:
            return [delivery.info(self.time_ms) for delivery in self.deliveries]

    def statistics(self) -> SimulationStatistics:
        with self._lock:
            delivered = [d for d in self.deliveries if d.status is DeliveryStatus.DELIVERED]
            durations = [d.delivered_at - d.created_at for d in delivered]
            best = None
            for drone in self.drones:
                if best is None or drone.deliveries_completed > best.deliveries_completed:
                    best = drone
            return SimulationStatistics(
                deliveries_completed=len(delivered),
                deliveries_open=len(self.deliveries) - len(delivered),
                total_distance=float(sum(drone.distance_traveled for drone in self.drones)),
                total_trips=sum(drone.trips for drone in self.drones),
                avg_delivery_time_ms=float(np.mean(durations)) if durations else 0.0,
                fleet_efficiency=float(np.mean([drone.efficiency for drone in self.drones])) if self.drones else 100.0,
                best_drone_id=best.id if best is not None else None,
            )

    def deliveries_frame(self) -> pd.DataFrame:
        """One row per delivery, for analysis and export."""
        columns = [
            "id",
            "x",
            "y",
            "weight",
            "priority",
            "status",
            "assigned_drone_id",
            "delivered_by",
            "created_at_ms",
            "delivered_at_ms",
            "delivery_time_ms",
        ]
        with self._lock:
            rows = [
                {
                    "id": d.id,
                    "x": d.location.x,
                    "y": d.location.y,
                    "weight": d.weight,
                    "priority": d.priority.name.lower(),
                    "status": d.status.name.lower(),
                    "assigned_drone_id": d.assigned_drone_id,
                    "delivered_by": d.delivered_by,
                    "created_at_ms": d.created_at,
                    "delivered_at_ms": d.delivered_at,
                    "delivery_time_ms": (d.delivered_at - d.created_at) if d.delivered_at is not None else None,
                }
                for d in self.deliveries
            ]
        return pd.DataFrame(rows, columns=columns)
