"""Simulated-time countdown timers.

Components:
    Timer: Countdown timer advanced by simulation ticks
"""

from .timer import Timer

__all__ = ["Timer"]
