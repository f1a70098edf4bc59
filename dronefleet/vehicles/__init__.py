"""Simulated vehicles.

Components:
    Vehicle: Base class with state machine and timer management
    Drone: Delivery drone lifecycle
    DroneState: Closed set of drone lifecycle states
    DroneStatus: Immutable drone snapshot
"""

from .drone import Drone, DroneState, DroneStatus
from .vehicle import Vehicle

__all__ = ["Drone", "DroneState", "DroneStatus", "Vehicle"]
