"""Order lifecycle: status transitions and the audit history stored on orders."""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, TypedDict

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    """Order status values."""

    PENDING = "pending"  # Order created, awaiting payment
    PAID = "paid"
    FAILED = "failed"  # Payment processing failed
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FULFILLED = "fulfilled"  # Items shipped
    COMPLETED = "completed"


# Directed transition table. REFUNDED and COMPLETED are final.
VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.FAILED, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.FULFILLED, OrderStatus.REFUNDED, OrderStatus.CANCELLED}),
    OrderStatus.FAILED: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.CANCELLED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.FULFILLED: frozenset({OrderStatus.COMPLETED, OrderStatus.REFUNDED}),
    OrderStatus.REFUNDED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
}

STATUS_DESCRIPTIONS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Awaiting payment",
    OrderStatus.PAID: "Payment received",
    OrderStatus.FAILED: "Payment failed",
    OrderStatus.CANCELLED: "Order cancelled",
    OrderStatus.REFUNDED: "Refund issued",
    OrderStatus.FULFILLED: "Items shipped",
    OrderStatus.COMPLETED: "Order completed",
}

StatusActor = Literal["system", "customer", "admin", "payment_gateway"]

INITIAL_STATUS_REASON = "Order created - awaiting bank transfer payment"


class OrderStatusHistoryEntry(TypedDict):
    """A single entry of the append-only status history.

    Keys are camelCase because the history is stored verbatim as order
    metadata and read back by other consumers of the backend.
    """

    timestamp: str
    fromStatus: str | None
    toStatus: str
    reason: str
    actor: StatusActor


class InvalidStatusTransition(ValueError):
    """Raised when a status change is not allowed by the transition table."""

    def __init__(self, from_status: OrderStatus, to_status: OrderStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(get_invalid_transition_reason(from_status, to_status))


def is_valid_status_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """Check whether an order may move from one status to another."""
    return OrderStatus(to_status) in VALID_TRANSITIONS[OrderStatus(from_status)]


def get_invalid_transition_reason(from_status: OrderStatus, to_status: OrderStatus) -> str:
    """Explain why a transition is rejected, for error messages."""
    from_status = OrderStatus(from_status)
    to_status = OrderStatus(to_status)
    valid_targets = VALID_TRANSITIONS[from_status]
    if not valid_targets:
        return f"Cannot transition from {from_status.value} - this is a final state"
    allowed = ", ".join(sorted(status.value for status in valid_targets))
    return f"Invalid transition from {from_status.value} to {to_status.value}. Valid transitions: {allowed}"


def get_status_description(status: OrderStatus) -> str:
    """Human-readable description of a status."""
    try:
        return STATUS_DESCRIPTIONS[OrderStatus(status)]
    except ValueError:
        return "Unknown status"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_initial_status_history(
    actor: StatusActor = "customer",
    reason: str = INITIAL_STATUS_REASON,
) -> OrderStatusHistoryEntry:
    """Create the first history entry for a newly created order.

    Args:
        actor: ``customer`` for storefront checkouts, ``system`` for programmatic creation.
        reason: Human-readable explanation recorded in the history.

    Returns:
        OrderStatusHistoryEntry: Entry moving from no status to pending.
    """
    return {
        "timestamp": _utc_now_iso(),
        "fromStatus": None,
        "toStatus": OrderStatus.PENDING.value,
        "reason": reason,
        "actor": actor,
    }


def create_status_transition_entry(
    from_status: OrderStatus,
    to_status: OrderStatus,
    reason: str,
    actor: StatusActor = "system",
) -> OrderStatusHistoryEntry:
    """Create a history entry for a status change.

    Raises:
        InvalidStatusTransition: If the transition is not in the transition table.
    """
    from_status = OrderStatus(from_status)
    to_status = OrderStatus(to_status)
    if not is_valid_status_transition(from_status, to_status):
        raise InvalidStatusTransition(from_status, to_status)
    return {
        "timestamp": _utc_now_iso(),
        "fromStatus": from_status.value,
        "toStatus": to_status.value,
        "reason": reason,
        "actor": actor,
    }


def serialize_status_history(history: list[OrderStatusHistoryEntry]) -> str:
    """Serialize history for storage as an order metadata value."""
    return json.dumps(history)


def deserialize_status_history(raw: str | None) -> list[OrderStatusHistoryEntry]:
    """Parse history stored in order metadata.

    Returns an empty list for missing or malformed values.
    """
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.error("Failed to parse order status history: %.100s", raw)
        return []
    return parsed if isinstance(parsed, list) else []
