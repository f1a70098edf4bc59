"""Delivery drone with a state machine driven lifecycle.

A drone waits at the base until the allocator loads cargo onto it, then flies
each stop in cargo order: it collects the package at the stop, brings it back
to the base, and delivers it there before flying to the next stop. Battery is
drained by the distance flown and refilled while recharging at the base.

Lifecycle:
    IDLE -> LOADING -> FLYING -> COLLECTING -> RETURNING -> DELIVERING
    DELIVERING -> FLYING (next stop) | RECHARGING | IDLE
    RETURNING -> RECHARGING | IDLE (nothing to deliver)
    FLYING -> RETURNING (emergency, battery critical)
    RECHARGING -> IDLE (battery full)

Behaviour is split the same way for every state:
    on_<state>(dt_ms, now_ms): called on every tick while in the state.
    enter_<state>(now_ms): called once by the state machine on entry.

Subclasses may override either hook and call ``super()`` to keep the base
behaviour.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
import logging

import numpy as np

from dronefleet import config
from dronefleet.events import EventKind, EventLevel, EventSink, FleetEvent, NullEventSink
from dronefleet.geo import Point
from dronefleet.mission import Delivery, DeliveryStatus, Priority
from dronefleet.state import Action
from dronefleet.timer import Timer

from .vehicle import Vehicle

logger = logging.getLogger(__name__)

FEEDBACK_MESSAGES = (
    "Super fast delivery, excellent service!",
    "The drone arrived right on time.",
    "Package in perfect condition, thank you!",
    "Innovative and efficient service!",
    "Loved getting my parcel by drone!",
    "Precise and safe delivery, recommended!",
    "Watched the drone live the whole way. Fantastic!",
    "Impressive technology, the future of deliveries!",
    "Quick and contactless. Perfect!",
)


class DroneState(Enum):
    """Operational states of a delivery drone.

    States:
        IDLE: At the base, available for allocation.
        LOADING: Cargo assigned, preparing for take-off.
        FLYING: Travelling to the next cargo stop.
        COLLECTING: Picking up the package at the stop.
        RETURNING: Travelling back to the base.
        DELIVERING: Handing collected packages over at the base.
        RECHARGING: At the base, battery refilling.
    """

    IDLE = auto()
    LOADING = auto()
    FLYING = auto()
    COLLECTING = auto()
    RETURNING = auto()
    DELIVERING = auto()
    RECHARGING = auto()


@dataclass(frozen=True)
class DroneStatus:
    """Immutable snapshot of a drone for presentation and monitoring.

    Attributes:
        id (int): Drone identifier.
        state (DroneState): Lifecycle state at snapshot time.
        battery (float): Battery level in percent.
        position (Point): Current position.
        current_weight (float): Total weight of the cargo, in kg.
        capacity (float): Maximum cargo weight, in kg.
        range_km (float): Maximum round-trip distance accepted.
        deliveries_completed (int): Packages delivered so far.
        efficiency (float): Deliveries per trip, as a percentage.
        distance_traveled (float): Total distance flown.
        trips (int): Number of take-offs from the base with fresh cargo.
        is_recharging (bool): True while in RECHARGING.
        cargo_count (int): Number of deliveries still carried.
        destination (Point | None): Current flight target, if any.
    """

    id: int
    state: DroneState
    battery: float
    position: Point
    current_weight: float
    capacity: float
    range_km: float
    deliveries_completed: int
    efficiency: float
    distance_traveled: float
    trips: int
    is_recharging: bool
    cargo_count: int
    destination: Point | None


class Drone(Vehicle):
    """A delivery drone operating from a fixed base.

    Attributes:
        base (Point): Position the drone departs from and returns to.
        capacity (float): Maximum cargo weight, in kg.
        range_km (float): Maximum round-trip distance for a single delivery.
        battery (float): Battery level in percent, always within [0, 100].
        speed (float): Cruising speed in km/h.
        consumption_rate (float): Battery percent drained per distance unit.
        recharge_rate (float): Battery percent restored per simulated second.
        deliveries_completed (int): Packages delivered so far.
        trips (int): Take-offs from the base with fresh cargo.
        distance_traveled (float): Total distance flown.
        efficiency (float): ``deliveries_completed / max(trips, 1) * 100``,
            100 until the first delivery.
        is_recharging (bool): True while in RECHARGING.
        events (EventSink): Receiver of the drone's notifications.
        rng (np.random.Generator): Source of customer feedback ratings.
        _cargo (list[Delivery]): Carried deliveries in stop order.
        _destination (Point | None): Current flight target.
        _phase_timer (Timer | None): Timer of the current timed phase.
        _on_actions (dict[DroneState, Callable]): Per-state tick handlers.
    """

    base: Point
    capacity: float
    range_km: float
    battery: float
    speed: float
    consumption_rate: float
    recharge_rate: float

    _cargo: list[Delivery]
    _destination: Point | None
    _phase_timer: Timer | None
    _on_actions: dict[DroneState, Callable[[float, float], None]]

    def __init__(
        self,
        id: int,
        capacity: float = config.DEFAULT_CAPACITY,
        range_km: float = config.DEFAULT_RANGE,
        battery: float = config.DEFAULT_BATTERY,
        base: Point = config.BASE_POSITION,
        position: Point | None = None,
        speed: float = config.DEFAULT_SPEED,
        consumption_rate: float = config.DEFAULT_CONSUMPTION_RATE,
        recharge_rate: float = config.DEFAULT_RECHARGE_RATE,
        events: EventSink | None = None,
        rng: np.random.Generator | None = None,
    ):
        """Create an idle drone.

        Args:
            id: Stable identifier.
            capacity: Maximum cargo weight in kg.
            range_km: Maximum round-trip distance.
            battery: Initial battery percentage.
            base: Home base position.
            position: Initial position, the base when omitted.
            speed: Cruising speed in km/h.
            consumption_rate: Battery percent per distance unit flown.
            recharge_rate: Battery percent per simulated second of charging.
            events: Sink for notifications, discarded when omitted.
            rng: Generator for customer feedback, a fresh one when omitted.

        Raises:
            ValueError: If the battery is outside [0, 100] or capacity, range
                or speed is not positive.
        """
        super().__init__(id, position if position is not None else base)
        if not 0.0 <= battery <= 100.0:
            msg = f"Invalid battery percentage: {battery}"
            raise ValueError(msg)
        if capacity <= 0 or range_km <= 0 or speed <= 0:
            msg = f"Capacity, range and speed must be positive: {capacity}, {range_km}, {speed}"
            raise ValueError(msg)

        self.base = base
        self.capacity = capacity
        self.range_km = range_km
        self.battery = battery
        self.speed = speed
        self.consumption_rate = consumption_rate
        self.recharge_rate = recharge_rate
        self.events = events if events is not None else NullEventSink()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.deliveries_completed = 0
        self.trips = 0
        self.distance_traveled = 0.0
        self.efficiency = 100.0
        self.is_recharging = False

        self._cargo = []
        self._destination = None
        self._phase_timer = None

        self.init_state_machine(
            DroneState.IDLE,
            {
                DroneState.IDLE: [Action(DroneState.LOADING, self.enter_loading)],
                DroneState.LOADING: [Action(DroneState.FLYING, self.enter_flying)],
                DroneState.FLYING: [
                    Action(DroneState.COLLECTING, self.enter_collecting),
                    Action(DroneState.RETURNING, self.enter_returning),
                ],
                DroneState.COLLECTING: [Action(DroneState.RETURNING, self.enter_returning)],
                DroneState.RETURNING: [
                    Action(DroneState.DELIVERING, self.enter_delivering),
                    Action(DroneState.RECHARGING, self.enter_recharging),
                    Action(DroneState.IDLE, self.enter_idle),
                ],
                DroneState.DELIVERING: [
                    Action(DroneState.FLYING, self.enter_flying),
                    Action(DroneState.RECHARGING, self.enter_recharging),
                    Action(DroneState.IDLE, self.enter_idle),
                ],
                DroneState.RECHARGING: [Action(DroneState.IDLE, self.enter_idle)],
            },
        )

        self._on_actions = {
            DroneState.IDLE: self.on_idle,
            DroneState.LOADING: self.on_loading,
            DroneState.FLYING: self.on_flying,
            DroneState.COLLECTING: self.on_collecting,
            DroneState.RETURNING: self.on_returning,
            DroneState.DELIVERING: self.on_delivering,
            DroneState.RECHARGING: self.on_recharging,
        }

    @property
    def state(self) -> DroneState:
        return self.current_state

    @property
    def cargo(self) -> tuple[Delivery, ...]:
        """Carried deliveries in stop order."""
        return tuple(self._cargo)

    @property
    def current_weight(self) -> float:
        return sum(delivery.weight for delivery in self._cargo)

    @property
    def destination(self) -> Point | None:
        return self._destination

    def is_available(self) -> bool:
        """True if the drone is idle with at least the low battery threshold."""
        return self.state is DroneState.IDLE and self.battery >= config.LOW_BATTERY

    def round_trip_distance(self, location: Point) -> float:
        return 2.0 * self.base.distance_to(location)

    def can_accept(self, delivery: Delivery) -> bool:
        """Check whether the drone can physically fulfil ``delivery`` now.

        The drone must be idle, the added weight must fit, the round trip from
        the base must be within range, and the battery must cover the round
        trip plus a safety margin.
        """
        if self.state is not DroneState.IDLE:
            return False
        if self.current_weight + delivery.weight > self.capacity:
            return False
        trip = self.round_trip_distance(delivery.location)
        if trip > self.range_km:
            return False
        battery_needed = trip * self.consumption_rate
        return self.battery >= battery_needed + config.ACCEPT_SAFETY_MARGIN

    def load_packages(self, deliveries: Sequence[Delivery], now_ms: float = 0.0) -> bool:
        """Take ``deliveries`` on board, in stop order, and start loading.

        Every delivery is marked en route and assigned to this drone.

        Returns:
            bool: False, leaving everything untouched, if the drone is not
                idle, the list is empty, the cargo would exceed capacity, or a
                delivery is not waiting for dispatch.
        """
        if self.state is not DroneState.IDLE or not deliveries:
            return False
        if sum(delivery.weight for delivery in deliveries) > self.capacity:
            return False
        if not all(delivery.is_awaiting_dispatch for delivery in deliveries):
            return False

        self._cargo = list(deliveries)
        for delivery in self._cargo:
            delivery.dispatch(self.id)
        self.transition_to(DroneState.LOADING, now_ms)
        return True

    def reconfigure(self, capacity: float, range_km: float, battery: float) -> None:
        """Apply fleet-wide parameters; the battery only changes while idle."""
        self.capacity = capacity
        self.range_km = range_km
        if self.state is DroneState.IDLE:
            self.battery = min(100.0, max(0.0, battery))

    def vehicle_update(self, dt_ms: float, now_ms: float) -> None:
        self._on_actions[self.current_state](dt_ms, now_ms)

    def move_towards(self, target: Point, dt_ms: float) -> bool:
        """Fly towards ``target`` for ``dt_ms`` of simulated time.

        The battery is drained by the distance actually covered. Position
        snaps onto the target once within the arrival threshold.

        Returns:
            bool: True if the drone is at ``target`` after the move.
        """
        if self.position.distance_to(target) < config.ARRIVAL_THRESHOLD:
            self.position = target
            return True

        step = self.speed / 3600.0 * dt_ms
        next_position = self.position.towards(target, step)
        moved = self.position.distance_to(next_position)
        self.position = next_position
        self.distance_traveled += moved
        self.battery = max(0.0, self.battery - moved * self.consumption_rate)

        if self.position.distance_to(target) < config.ARRIVAL_THRESHOLD:
            self.position = target
            return True
        return False

    def emergency_return(self, now_ms: float) -> bool:
        """Abort the current flight and head back to the base.

        Every carried delivery is rescheduled and released to the pending pool.

        Returns:
            bool: False if the drone is not flying.
        """
        if self.state is not DroneState.FLYING:
            return False

        released = self.release_cargo(now_ms)
        logger.warning(
            "Drone %d returning on low battery (%.1f%%), %d deliveries rescheduled",
            self.id,
            self.battery,
            len(released),
        )
        self._notify(
            EventKind.EMERGENCY_RETURN,
            f"Drone {self.id} returning to base: low battery ({self.battery:.0f}%)",
            now_ms,
            EventLevel.WARNING,
        )
        self.transition_to(DroneState.RETURNING, now_ms)
        return True

    def recharge(self, dt_ms: float) -> bool:
        """Add charge for ``dt_ms`` of simulated time.

        Returns:
            bool: True once the battery is full.
        """
        self.battery = min(100.0, self.battery + self.recharge_rate * dt_ms / 1000.0)
        return self.battery >= 100.0

    def get_status(self) -> DroneStatus:
        return DroneStatus(
            id=self.id,
            state=self.state,
            battery=self.battery,
            position=self.position,
            current_weight=self.current_weight,
            capacity=self.capacity,
            range_km=self.range_km,
            deliveries_completed=self.deliveries_completed,
            efficiency=self.efficiency,
            distance_traveled=self.distance_traveled,
            trips=self.trips,
            is_recharging=self.is_recharging,
            cargo_count=len(self._cargo),
            destination=self._destination,
        )

    # Tick handlers

    def on_idle(self, dt_ms: float, now_ms: float) -> None:
        pass

    def on_loading(self, dt_ms: float, now_ms: float) -> None:
        if self._phase_timer is not None and self._phase_timer.done:
            self.trips += 1
            self.transition_to(DroneState.FLYING, now_ms)

    def on_flying(self, dt_ms: float, now_ms: float) -> None:
        if self._destination is None:
            return
        arrived = self.move_towards(self._destination, dt_ms)
        if self.battery < config.CRITICAL_BATTERY:
            self.emergency_return(now_ms)
        elif arrived:
            self.transition_to(DroneState.COLLECTING, now_ms)

    def on_collecting(self, dt_ms: float, now_ms: float) -> None:
        if self._phase_timer is None or not self._phase_timer.done:
            return
        if self._cargo:
            delivery = self._cargo[0]
            delivery.collect()
            self._notify(
                EventKind.PACKAGE_COLLECTED,
                f"Drone {self.id} collected delivery #{delivery.id}",
                now_ms,
                delivery_id=delivery.id,
            )
        self.transition_to(DroneState.RETURNING, now_ms)

    def on_returning(self, dt_ms: float, now_ms: float) -> None:
        if not self.move_towards(self.base, dt_ms):
            return
        if self._cargo and self._cargo[0].status is DeliveryStatus.COLLECTED:
            self.transition_to(DroneState.DELIVERING, now_ms)
            return
        if self._cargo:
            self.release_cargo(now_ms)
        self._settle(now_ms)

    def on_delivering(self, dt_ms: float, now_ms: float) -> None:
        if self._phase_timer is None or not self._phase_timer.done:
            return
        while self._cargo and self._cargo[0].status is DeliveryStatus.COLLECTED:
            delivery = self._cargo.pop(0)
            delivery.complete(self.id, now_ms)
            self.deliveries_completed += 1
            self._notify(
                EventKind.DELIVERY_COMPLETED,
                f"Drone {self.id} delivered #{delivery.id}",
                now_ms,
                EventLevel.SUCCESS,
                delivery_id=delivery.id,
            )
            self.customer_feedback(delivery, now_ms)
        self.efficiency =self.deliveries_completed / max(self.trips, 1) * 100.0

        if self._cargo:
            self.transition_to(DroneState.FLYING, now_ms)
        else:
            self._settle(now_ms)

    def on_recharging(self, dt_ms: float, now_ms: float) -> None:
        if self.recharge(dt_ms):
            self._notify(EventKind.DRONE_RECHARGED, f"Drone {self.id} fully charged", now_ms, EventLevel.SUCCESS)
            self.transition_to(DroneState.IDLE, now_ms)

    # State entry effects

    def enter_idle(self, now_ms: float) -> None:
        self.is_recharging = False
        self._destination = None
        self._notify(
            EventKind.DRONE_AVAILABLE,
            f"Drone {self.id} available for a new delivery",
            now_ms,
            EventLevel.SUCCESS,
        )

    def enter_loading(self, now_ms: float) -> None:
        self._destination = self._cargo[0].location
        self._phase_timer = self.create_timer(config.LOADING_DURATION_MS)

    def enter_flying(self, now_ms: float) -> None:
        self._phase_timer = None
        self._destination = self._cargo[0].location
        self._notify(
            EventKind.DRONE_DEPARTED,
            f"Drone {self.id} took off towards delivery #{self._cargo[0].id}",
            now_ms,
            EventLevel.SUCCESS,
            delivery_id=self._cargo[0].id,
        )

    def enter_collecting(self, now_ms: float) -> None:
        self._phase_timer = self.create_timer(config.COLLECTING_DURATION_MS)

    def enter_returning(self, now_ms: float) -> None:
        self._phase_timer = None
        self._destination = self.base

    def enter_delivering(self, now_ms: float) -> None:
        self._phase_timer = self.create_timer(config.DELIVERING_DURATION_MS)

    def enter_recharging(self, now_ms: float) -> None:
        self._phase_timer = None
        self._destination = None
        self.is_recharging = True
        self._notify(
            EventKind.RECHARGE_STARTED,
            f"Drone {self.id} recharging ({self.battery:.0f}%)",
            now_ms,
            EventLevel.WARNING,
        )

    def release_cargo(self, now_ms: float) -> list[Delivery]:
        """Reschedule every carried delivery and empty the cargo hold."""
        released = self._cargo
        self._cargo = []
        for delivery in released:
            delivery.reschedule()
            self._notify(
                EventKind.DELIVERY_RESCHEDULED,
                f"Delivery #{delivery.id} rescheduled",
                now_ms,
                EventLevel.WARNING,
                delivery_id=delivery.id,
            )
        return released

    def customer_feedback(self, delivery: Delivery, now_ms: float) -> int:
        """Emit the customer's rating for a delivered package.

        High priority deliveries always rate 5; the others rate 4 or 5.
        """
        if delivery.priority is Priority.HIGH:
            rating = 5
        else:
            rating = int(self.rng.integers(4, 6))
        message = FEEDBACK_MESSAGES[int(self.rng.integers(len(FEEDBACK_MESSAGES)))]
        self._notify(
            EventKind.CUSTOMER_FEEDBACK,
            f"Customer #{delivery.id}: {message}",
            now_ms,
            delivery_id=delivery.id,
            rating=rating,
        )
        return rating

    # Internals

    def _settle(self, now_ms: float) -> None:
        """Go to RECHARGING on a low battery, IDLE otherwise."""
        if self.battery < config.LOW_BATTERY:
            self.transition_to(DroneState.RECHARGING, now_ms)
        else:
            self.transition_to(DroneState.IDLE, now_ms)

    def _notify(
        self,
        kind: EventKind,
        message: str,
        now_ms: float,
        level: EventLevel = EventLevel.INFO,
        delivery_id: int | None = None,
        rating: int | None = None,
    ) -> None:
        self.events.emit(
            FleetEvent(
                kind=kind,
                message=message,
                level=level,
                time_ms=now_ms,
                drone_id=self.id,
                delivery_id=delivery_id,
                rating=rating,
            )
        )

    def __repr__(self) -> str:
        return (
            f"Drone(id={self.id}, state={self.state.name}, battery={self.battery:.1f}%, "
            f"pos={self.position}, cargo={len(self._cargo)})"
        )
