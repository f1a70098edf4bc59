"""Planar geometry for the delivery grid.

Components:
    Point: Immutable (x, y) position in km
    distance: Euclidean distance between two points

Example:
    >>> from dronefleet.geo import Point, distance
    >>> distance(Point(0, 0), Point(3, 4))
    5.0
"""

from .point import Point, distance

__all__ = ["Point", "distance"]
