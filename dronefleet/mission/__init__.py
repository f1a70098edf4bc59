"""Delivery requests and their lifecycle.

Components:
    Delivery: A package request with a validated status flow
    DeliveryStatus: PENDING, EN_ROUTE, COLLECTED, DELIVERED, RESCHEDULED
    Priority: HIGH > MEDIUM > LOW, valued by priority weight
    validate_request: Bounds check for coordinates and weight
"""

from .delivery import (
    AWAITING_DISPATCH,
    Delivery,
    DeliveryInfo,
    DeliveryStatus,
    Priority,
    validate_request,
)

__all__ = [
    "AWAITING_DISPATCH",
    "Delivery",
    "DeliveryInfo",
    "DeliveryStatus",
    "Priority",
    "validate_request",
]
