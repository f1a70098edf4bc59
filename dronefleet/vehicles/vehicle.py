"""Vehicle base class with state machine and timer management.

Concrete vehicles configure a state graph with ``init_state_machine`` and
implement ``vehicle_update``. ``update`` advances every managed timer first and
then runs the vehicle logic, so a timer created for a phase reports ``done`` on
the first tick at which its duration has fully elapsed.

Example:
    >>> class Cart(Vehicle):
    ...     def __init__(self, id, pos):
    ...         super().__init__(id, pos)
    ...         self.init_state_machine(CartState.PARKED, graph)
    ...
    ...     def vehicle_update(self, dt_ms, now_ms):
    ...         if self.current_state is CartState.MOVING:
    ...             self._drive(dt_ms)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from dronefleet.geo import Point
from dronefleet.state import State, StateGraph, StateMachine
from dronefleet.timer import Timer


class Vehicle(ABC):
    """Abstract base class for simulated vehicles.

    Attributes:
        id (int): Stable identifier assigned by the owner of the fleet.
        position (Point): Current position on the grid.
        _state_machine (StateMachine | None): Validated lifecycle.
        _timers (list[Timer]): Active timers, dropped once done.
    """

    id: int
    position: Point
    _state_machine: StateMachine | None = None
    _timers: list[Timer]

    def __init__(self, id: int, pos: Point):
        self.id = id
        self.position = pos
        self._timers = []

    def init_state_machine(self, initial_state: State, nodes_graph: StateGraph) -> None:
        self._state_machine = StateMachine(initial_state, nodes_graph)

    def transition_to(self, next_state: State, *args, **kwargs) -> Any:
        """Request a validated state transition.

        Raises:
            NotImplementedError: If no state machine was configured.
            IllegalTransitionError: If the graph has no such transition.
        """
        if self._state_machine is None:
            msg = "Subclasses must call init_state_machine before transitioning."
            raise NotImplementedError(msg)
        return self._state_machine.request_transition(next_state, *args, **kwargs)

    @property
    def current_state(self) -> State:
        if self._state_machine is None:
            msg = "Subclasses must call init_state_machine before reading the state."
            raise NotImplementedError(msg)
        return self._state_machine.current

    def state_list(self) -> list[State]:
        """All states of the configured lifecycle graph."""
        if self._state_machine is None:
            msg = "Subclasses must call init_state_machine before reading the states."
            raise NotImplementedError(msg)
        return self._state_machine.get_state_list()

    def update(self, dt_ms: float, now_ms: float) -> None:
        """Advance the vehicle by one simulation step."""
        self.timer_update(dt_ms)
        self.vehicle_update(dt_ms, now_ms)

    @abstractmethod
    def vehicle_update(self, dt_ms: float, now_ms: float) -> None:
        pass

    def timer_update(self, dt_ms: float) -> None:
        """Advance every managed timer and drop the ones that are done.

        A dropped timer keeps reporting ``done`` to whoever still holds it.
        """
        for timer in list(self._timers):
            timer.advance(dt_ms)
            if timer.done:
                self._timers.remove(timer)

    def create_timer(self, duration_ms: float) -> Timer:
        """Create a timer that ``update`` advances automatically.

        Do not reuse Timer instances; create a new one for each timed phase.
        """
        new_timer = Timer(duration_ms)
        self._timers.append(new_timer)
        return new_timer
