"""
Order and negotiation status enums with transition rules.

This module defines the status enums for the order lifecycle and for
individual negotiation entries, together with the order status transition
table used by the order state machine.
"""

from enum import Enum
from typing import Dict, Set


class OrderStatus(str, Enum):
    """Order lifecycle status with state machine transitions.

    Valid transitions:
    - NEGOTIATION -> ACCEPTED, REJECTED, CANCELLED
    - ACCEPTED -> ACCEPTED (idempotent re-entry), COMPLETED, CANCELLED
    - REJECTED -> (terminal state)
    - COMPLETED -> (terminal state)
    - CANCELLED -> (terminal state)
    """

    NEGOTIATION = "negotiation"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def is_price_frozen(self) -> bool:
        """Price may only change while the order is still being negotiated."""
        return self is not OrderStatus.NEGOTIATION


class NegotiationStatus(str, Enum):
    """Status of a single negotiation entry.

    An entry is created PENDING and answered exactly once by the counterpart
    with ACCEPTED, REJECTED or COUNTERED.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"

    def is_response(self) -> bool:
        """Check if status is a valid answer to a pending entry."""
        return self is not NegotiationStatus.PENDING


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.NEGOTIATION: {
        OrderStatus.ACCEPTED,
        OrderStatus.REJECTED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ACCEPTED: {
        OrderStatus.ACCEPTED,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.REJECTED: set(),
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def get_allowed_order_transitions(current_status: OrderStatus) -> Set[OrderStatus]:
    """Get the set of statuses reachable from ``current_status``."""
    return ORDER_STATUS_TRANSITIONS.get(current_status, set())


def validate_order_status_transition(
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> bool:
    """Check whether moving from ``current_status`` to ``target_status`` is allowed."""
    return target_status in get_allowed_order_transitions(current_status)
