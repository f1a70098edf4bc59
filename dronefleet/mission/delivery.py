"""Delivery requests and their status flow.

A ``Delivery`` is created with status PENDING when a request is submitted. It
is owned by the pending pool until a drone accepts it, then by that drone until
it is delivered. If the carrying drone aborts its flight the delivery is
RESCHEDULED and goes back to the pool.

Status flow:
    PENDING -> EN_ROUTE -> COLLECTED -> DELIVERED
    EN_ROUTE | COLLECTED -> RESCHEDULED -> EN_ROUTE ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, auto
import math

from dronefleet import config
from dronefleet.errors import DeliveryValidationError
from dronefleet.geo import Point
from dronefleet.state import Action, StateMachine


class Priority(IntEnum):
    """Delivery priority. The integer value is the priority weight."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def weight(self) -> int:
        return int(self)

    @classmethod
    def parse(cls, value: Priority | str | int) -> Priority:
        """Accept a member, its name (any case) or its weight."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise DeliveryValidationError("priority", value, "expected high, medium or low") from None
        try:
            return cls(value)
        except ValueError:
            raise DeliveryValidationError("priority", value, "expected 1, 2 or 3") from None


class DeliveryStatus(Enum):
    PENDING = auto()
    EN_ROUTE = auto()
    COLLECTED = auto()
    DELIVERED = auto()
    RESCHEDULED = auto()


AWAITING_DISPATCH = frozenset({DeliveryStatus.PENDING, DeliveryStatus.RESCHEDULED})


def validate_request(x: float, y: float, weight: float) -> None:
    """Check a delivery request against the operating limits.

    Raises:
        DeliveryValidationError: If a coordinate lies outside the grid or the
            weight is not in (0, MAX_DELIVERY_WEIGHT].
    """
    for name, value in (("x", x), ("y", y)):
        if not isinstance(value, (int, float)) or isinstance(value, bool) or math.isnan(value):
            raise DeliveryValidationError(name, value, "coordinate must be a number")
        if not config.AREA_MIN <= value <= config.AREA_MAX:
            raise DeliveryValidationError(
                name, value, f"coordinate must be within [{config.AREA_MIN:g}, {config.AREA_MAX:g}]"
            )
    if not isinstance(weight, (int, float)) or isinstance(weight, bool) or math.isnan(weight):
        raise DeliveryValidationError("weight", weight, "weight must be a number")
    if not 0.0 < weight <= config.MAX_DELIVERY_WEIGHT:
        raise DeliveryValidationError(
            "weight", weight, f"weight must be in (0, {config.MAX_DELIVERY_WEIGHT:g}] kg"
        )


@dataclass(frozen=True)
class DeliveryInfo:
    """Read-only view of a delivery for presentation."""

    id: int
    location: Point
    weight: float
    priority: Priority
    status: DeliveryStatus
    assigned_drone_id: int | None
    delivered_by: int | None
    wait_time_ms: float | None
    delivery_time_ms: float | None


class Delivery:
    """A package to collect at ``location`` and bring back to base.

    Attributes:
        id (int): Unique, monotonically increasing within a run.
        location (Point): Collection point on the grid.
        weight (float): Package weight in kg.
        priority (Priority): Dispatch priority.
        created_at (float): Simulated time of submission, in ms.
        assigned_drone_id (int | None): Drone currently responsible for it.
        delivered_by (int | None): Drone that completed it.
        delivered_at (float | None): Simulated completion time, in ms.
        estimated_time (float | None): Estimated trip time in minutes, set by
            the optimizer when it allocates the delivery.
    """

    def __init__(
        self,
        id: int,
        location: Point,
        weight: float,
        priority: Priority = Priority.MEDIUM,
        created_at: float = 0.0,
    ):
        self.id = id
        self.location = location
        self.weight = weight
        self.priority = Priority.parse(priority)
        self.created_at = created_at
        self.assigned_drone_id: int | None = None
        self.delivered_by: int | None = None
        self.delivered_at: float | None = None
        self.estimated_time: float | None = None
        self._flow = StateMachine(
            DeliveryStatus.PENDING,
            {
                DeliveryStatus.PENDING: [Action(DeliveryStatus.EN_ROUTE)],
                DeliveryStatus.EN_ROUTE: [
                    Action(DeliveryStatus.COLLECTED),
                    Action(DeliveryStatus.RESCHEDULED),
                ],
                DeliveryStatus.COLLECTED: [
                    Action(DeliveryStatus.DELIVERED),
                    Action(DeliveryStatus.RESCHEDULED),
                ],
                DeliveryStatus.RESCHEDULED: [Action(DeliveryStatus.EN_ROUTE)],
                DeliveryStatus.DELIVERED: [],
            },
        )

    @property
    def status(self) -> DeliveryStatus:
        return self._flow.current

    @property
    def is_awaiting_dispatch(self) -> bool:
        """True while the delivery sits in the pending pool."""
        return self.status in AWAITING_DISPATCH

    def dispatch(self, drone_id: int) -> None:
        self._flow.request_transition(DeliveryStatus.EN_ROUTE)
        self.assigned_drone_id = drone_id

    def collect(self) -> None:
        self._flow.request_transition(DeliveryStatus.COLLECTED)

    def complete(self, drone_id: int, now: float) -> None:
        self._flow.request_transition(DeliveryStatus.DELIVERED)
        self.delivered_by = drone_id
        self.delivered_at = now

    def reschedule(self) -> None:
        """Release the delivery back to the pending pool."""
        self._flow.request_transition(DeliveryStatus.RESCHEDULED)
        self.assigned_drone_id = None

    def info(self, now: float) -> DeliveryInfo:
        delivery_time = None
        wait_time = None
        if self.delivered_at is not None:
            delivery_time = self.delivered_at - self.created_at
        else:
            wait_time = max(0.0, now - self.created_at)
        return DeliveryInfo(
            id=self.id,
            location=self.location,
            weight=self.weight,
            priority=self.priority,
            status=self.status,
            assigned_drone_id=self.assigned_drone_id,
            delivered_by=self.delivered_by,
            wait_time_ms=wait_time,
            delivery_time_ms=delivery_time,
        )

    def __repr__(self) -> str:
        return (
            f"Delivery(id={self.id}, loc={self.location}, weight={self.weight:g}, "
            f"priority={self.priority.name}, status={self.status.name})"
        )
