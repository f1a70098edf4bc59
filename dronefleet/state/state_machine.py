"""State machine implementation for managing validated state transitions.

This module provides a finite state machine that enforces transition rules and
executes the action attached to a transition when it occurs. Drones use it for
their flight lifecycle and deliveries use it for their status flow.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, TypeVar

from dronefleet.errors import IllegalTransitionError

logger = logging.getLogger(__name__)

State = TypeVar("State", bound=Enum)
"""Type variable for state enumerations that extend Enum."""

ActionFn = Callable[..., Any]
"""Type alias for action effect functions."""

StateGraph = dict[Any, Iterable["Action"]]
"""Mapping of each state to the actions (outgoing transitions) it allows."""


@dataclass(frozen=True)
class Action:
    """Represents a state transition action with an optional effect function.

    Attributes:
        state: The target state this action transitions to.
        effect: Optional function executed after the transition is taken.
    """

    state: Any
    effect: ActionFn | None = None

    def __call__(self, *args, **kwargs) -> Any:
        """Execute the action's effect function if it exists.

        Returns:
            The result of the effect function, or None if no effect is defined.
        """
        if self.effect:
            return self.effect(*args, **kwargs)
        return None


class StateMachine:
    """A finite state machine that manages state transitions with validation.

    Each state maps to the actions it allows. Requesting a transition that is
    not in the graph raises ``IllegalTransitionError``; the current state is
    left untouched in that case.

    Attributes:
        _state: The current state of the state machine.
        _allowed: Dictionary mapping states to their allowed transitions.
    """

    _allowed: StateGraph
    _state: Any

    def __init__(self, initial_state: State, nodes_graph: StateGraph):
        """Initialize the state machine with an initial state and transition rules.

        Args:
            initial_state: The starting state for the state machine.
            nodes_graph: Dictionary mapping each state to its allowed actions.
        """
        self._state = initial_state
        self._allowed = nodes_graph

    def request_transition(self, next_state: State, *args, **kwargs) -> Any:
        """Request a state transition to the specified next state.

        The state is updated before the action effect runs, so an effect may
        itself request the following transition.

        Returns:
            The result of the transition action's effect function.

        Raises:
            IllegalTransitionError: If the transition is not allowed.
        """
        next_action = self._validate_transition(self._state, next_state)
        logger.debug("%s -> %s", self._state.name, next_state.name)
        self._state = next_action.state
        return next_action(*args, **kwargs)

    def can_transition(self, next_state: State) -> bool:
        """Return True if ``next_state`` is reachable from the current state."""
        return any(action.state == next_state for action in self._allowed.get(self._state, ()))

    @property
    def current(self) -> State:
        """Get the current state of the state machine."""
        return self._state

    def get_state_list(self) -> list[State]:
        """Return every state appearing in the transition graph, in definition order."""
        states = list(self._allowed)
        for actions in self._allowed.values():
            for action in actions:
                if action.state not in states:
                    states.append(action.state)
        return states

    def _validate_transition(self, frm: State, to: State) -> Action:
        """Find the action handling ``frm -> to``.

        Raises:
            IllegalTransitionError: If no valid transition exists.
        """
        for action in self._allowed.get(frm, ()):
            if action.state == to:
                return action
        raise IllegalTransitionError(frm, to)
