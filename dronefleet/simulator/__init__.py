"""Simulation package.

Exports:
    Simulation: Fleet, deliveries and simulated clock
    SimulationStatistics: Fleet-wide figures
"""

from .simulation import Simulation, SimulationStatistics

__all__ = ["Simulation", "SimulationStatistics"]
