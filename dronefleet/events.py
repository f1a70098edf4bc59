"""Event notifications emitted by the fleet core.

The core never talks to a concrete UI. Drones and the simulation hold a
reference to an ``EventSink`` and push ``FleetEvent`` records into it; the
presentation layer decides how to render them (see ``dronefleet.console``).

Each event carries a closed ``EventKind`` so tests and collaborators can react
to what happened without parsing the human-readable message.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """What happened."""

    FLEET_CONFIGURED = auto()
    SIMULATION_STARTED = auto()
    SIMULATION_PAUSED = auto()
    SIMULATION_RESET = auto()
    DELIVERY_SUBMITTED = auto()
    DELIVERY_ASSIGNED = auto()
    DRONES_DISPATCHED = auto()
    DRONE_DEPARTED = auto()
    PACKAGE_COLLECTED = auto()
    DELIVERY_COMPLETED = auto()
    DRONE_AVAILABLE = auto()
    RECHARGE_STARTED = auto()
    DRONE_RECHARGED = auto()
    EMERGENCY_RETURN = auto()
    DELIVERY_RESCHEDULED = auto()
    CUSTOMER_FEEDBACK = auto()


class EventLevel(Enum):
    """Severity used by renderers to pick a style."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class FleetEvent:
    """A discrete, human-readable notification.

    Attributes:
        kind (EventKind): Closed category of the event.
        message (str): Text meant for display.
        level (EventLevel): Severity for display.
        time_ms (float): Simulated time at which the event was emitted.
        drone_id (int | None): Drone concerned, if any.
        delivery_id (int | None): Delivery concerned, if any.
        rating (int | None): Customer rating from 1 to 5, feedback events only.
    """

    kind: EventKind
    message: str
    level: EventLevel = EventLevel.INFO
    time_ms: float = 0.0
    drone_id: int | None = None
    delivery_id: int | None = None
    rating: int | None = None


@runtime_checkable
class EventSink(Protocol):
    """Anything that accepts fleet events."""

    def emit(self, event: FleetEvent) -> None: ...


class NullEventSink:
    """Discards every event."""

    def emit(self, event: FleetEvent) -> None:
        pass


class EventRecorder:
    """Keeps every event in memory, in emission order."""

    def __init__(self, limit: int | None = None):
        """
        Args:
            limit: Keep at most this many of the most recent events. ``None``
                keeps all of them.
        """
        self.limit = limit
        self.events: list[FleetEvent] = []

    def emit(self, event: FleetEvent) -> None:
        self.events.append(event)
        if self.limit is not None and len(self.events) > self.limit:
            del self.events[: len(self.events) - self.limit]

    def of_kind(self, kind: EventKind) -> list[FleetEvent]:
        return [event for event in self.events if event.kind is kind]

    def kinds(self) -> list[EventKind]:
        return [event.kind for event in self.events]

    def clear(self) -> None:
        self.events = []

    def __len__(self) -> int:
        return len(self.events)


EventHandler = Callable[[FleetEvent], None]


class EventDispatcher:
    """Fans events out to handlers registered per kind.

    Handlers registered with ``kind=None`` receive every event. A handler that
    raises is logged and skipped; the remaining handlers still run.
    """

    def __init__(self):
        self._handlers: dict[EventKind | None, list[EventHandler]] = defaultdict(list)

    def register(self, handler: EventHandler, kind: EventKind | None = None) -> None:
        self._handlers[kind].append(handler)

    def unregister(self, handler: EventHandler, kind: EventKind | None = None) -> bool:
        handlers = self._handlers.get(kind, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, event: FleetEvent) -> None:
        for handler in self._handlers.get(event.kind, []) + self._handlers.get(None, []):
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", event.kind.name)
