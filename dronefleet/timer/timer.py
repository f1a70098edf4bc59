"""Countdown timers measured in simulated milliseconds.

Lifecycle phases with a fixed duration (loading, collecting, delivering) are
timed against the simulated clock rather than the wall clock: a timer only
moves when the owner advances it with the same delta passed to the simulation
tick, which keeps runs deterministic.
"""

from __future__ import annotations


class Timer:
    """Countdown timer for simulated-time phases.

    Timer instances should not be reused. Create a new timer for each timed
    phase; drones create them through ``Drone.create_timer`` so they are
    advanced and discarded automatically.

    Attributes:
        _remaining (float): Remaining duration in ms. Reaches zero or below
            when the timer is complete.
        _elapsed (float): Simulated time accumulated since creation, in ms.
    """

    _remaining: float
    _elapsed: float

    def __init__(self, duration_ms: float) -> None:
        if duration_ms < 0:
            msg = f"Timer duration must be non-negative: {duration_ms}"
            raise ValueError(msg)
        self._remaining = duration_ms
        self._elapsed = 0.0

    @property
    def remaining(self) -> float:
        """Remaining duration in ms, never below zero."""
        return max(0.0, self._remaining)

    @property
    def elapsed(self) -> float:
        return self._elapsed

    @property
    def done(self) -> bool:
        """True once the countdown has reached zero."""
        return self._remaining <= 0.0

    def advance(self, delta_ms: float) -> None:
        """Count down by ``delta_ms`` of simulated time."""
        self._remaining -= delta_ms
        self._elapsed += delta_ms

    def reset(self, duration_ms: float) -> None:
        """Restart the countdown from ``duration_ms``."""
        self._remaining = duration_ms
        self._elapsed = 0.0

    def __repr__(self) -> str:
        return f"Timer(remaining={self.remaining:.0f}ms)"
