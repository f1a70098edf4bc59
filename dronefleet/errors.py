"""Exception hierarchy for the drone fleet core.

Validation problems on input are reported by raising. Operational conflicts
(a busy drone asked to load, a delivery a drone cannot fly) are not errors:
the corresponding methods return ``False`` instead.
"""

from __future__ import annotations

from typing import Any


class FleetError(Exception):
    """Base class for every error raised by ``dronefleet``."""


class DeliveryValidationError(FleetError, ValueError):
    """Raised when a delivery request carries an invalid field.

    Attributes:
        field (str): Name of the offending field (``"x"``, ``"weight"``, ...).
        value (Any): The rejected value.
    """

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class IllegalTransitionError(FleetError, ValueError):
    """Raised when a state machine is asked for a transition outside its graph."""

    def __init__(self, frm, to):
        self.frm = frm
        self.to = to
        super().__init__(f"Illegal transition {frm.name} -> {to.name}")
