"""
Order Workflow

The order and kitchen status rules in one place:

    Order:  PENDING -> CONFIRMED -> PREPARING -> READY -> DELIVERED
    Item:   PENDING -> PREPARING -> READY -> DELIVERED

Staff move orders and items one step forward at a time. An order can be
cancelled until it is delivered. Item changes roll up into the order
status, but a roll-up never moves an order backwards.

Priority and "time since" labels are display hints derived from the
order age; they do not change processing order.

Version: 1.0.0
"""

import random
import string
import time
from datetime import datetime, timezone
from typing import Iterable, Optional

from qrdine.core.config import get_settings
from qrdine.models import ItemStatus, OrderStatus

ORDER_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
]

ITEM_FLOW = [
    ItemStatus.PENDING,
    ItemStatus.PREPARING,
    ItemStatus.READY,
    ItemStatus.DELIVERED,
]

COMPLETE_ITEM_STATUSES = (ItemStatus.READY, ItemStatus.DELIVERED)
REOPENING_ORDER_STATUSES = (OrderStatus.READY, OrderStatus.DELIVERED)
TERMINAL_ORDER_STATUSES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

PRIORITY_NORMAL = "normal"
PRIORITY_HIGH = "high"
PRIORITY_URGENT = "urgent"


class InvalidTransition(Exception):
    """Raised when a status change breaks the workflow rules."""

    def __init__(self, message: str, current: Optional[str] = None, target: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.current = current
        self.target = target


# =============================================================================
# STEP HELPERS
# =============================================================================

def order_rank(status: OrderStatus) -> int:
    """Position in the forward flow; CANCELLED ranks after everything."""
    if status == OrderStatus.CANCELLED:
        return len(ORDER_FLOW)
    return ORDER_FLOW.index(status)


def item_rank(status: ItemStatus) -> int:
    return ITEM_FLOW.index(status)


def next_order_status(status: OrderStatus) -> Optional[OrderStatus]:
    """The single forward step from ``status``, or None at the end."""
    if status in TERMINAL_ORDER_STATUSES:
        return None
    return ORDER_FLOW[ORDER_FLOW.index(status) + 1]


def next_item_status(status: ItemStatus) -> Optional[ItemStatus]:
    if status == ItemStatus.DELIVERED:
        return None
    return ITEM_FLOW[ITEM_FLOW.index(status) + 1]


def parse_item_status(value: str) -> ItemStatus:
    """
    Parse an item status sent by a client.

    The kitchen display historically sent CONFIRMED for items that had
    not been started yet; that value maps to PENDING.
    """
    normalized = (value or "").strip().upper()
    if normalized == OrderStatus.CONFIRMED.value:
        return ItemStatus.PENDING
    try:
        return ItemStatus(normalized)
    except ValueError:
        valid = [s.value for s in ItemStatus]
        raise ValueError(f"Invalid item status '{value}'. Options: {valid}")


def parse_order_status(value: str) -> OrderStatus:
    try:
        return OrderStatus((value or "").strip().upper())
    except ValueError:
        valid = [s.value for s in OrderStatus]
        raise ValueError(f"Invalid order status '{value}'. Options: {valid}")


# =============================================================================
# TRANSITIONS
# =============================================================================

def is_order_complete(item_statuses: Iterable[ItemStatus]) -> bool:
    statuses = list(item_statuses)
    return bool(statuses) and all(s in COMPLETE_ITEM_STATUSES for s in statuses)


def validate_order_transition(
    current: OrderStatus,
    target: OrderStatus,
    item_statuses: Iterable[ItemStatus],
) -> None:
    """
    Check a staff-triggered order status change.

    Raises:
        InvalidTransition: if ``target`` is not reachable from ``current``
    """
    if current == target:
        raise InvalidTransition(
            f"Order is already {current.value}", current.value, target.value
        )

    if current in TERMINAL_ORDER_STATUSES:
        raise InvalidTransition(
            f"Order is {current.value} and can no longer change",
            current.value,
            target.value,
        )

    if target == OrderStatus.CANCELLED:
        return

    expected = next_order_status(current)
    if target != expected:
        raise InvalidTransition(
            f"Order can only move from {current.value} to {expected.value}",
            current.value,
            target.value,
        )

    if target in REOPENING_ORDER_STATUSES and not is_order_complete(item_statuses):
        raise InvalidTransition(
            f"Order cannot be {target.value} while items are still in the kitchen",
            current.value,
            target.value,
        )


def validate_item_transition(current: ItemStatus, target: ItemStatus) -> None:
    """
    Check a kitchen-triggered item status change.

    Raises:
        InvalidTransition: unless ``target`` is exactly one step after ``current``
    """
    expected = next_item_status(current)
    if expected is None:
        raise InvalidTransition(
            f"Item is already {current.value}", current.value, target.value
        )
    if target != expected:
        raise InvalidTransition(
            f"Item can only move from {current.value} to {expected.value}",
            current.value,
            target.value,
        )


def rollup_order_status(item_statuses: Iterable[ItemStatus]) -> Optional[OrderStatus]:
    """
    Derive the order status implied by its items.

    Returns None when the items do not imply anything (for example when
    some are still pending).
    """
    statuses = list(item_statuses)
    if not statuses:
        return None

    if all(s == ItemStatus.DELIVERED for s in statuses):
        return OrderStatus.DELIVERED
    if all(s in COMPLETE_ITEM_STATUSES for s in statuses):
        return OrderStatus.READY
    if all(s != ItemStatus.PENDING for s in statuses):
        return OrderStatus.PREPARING
    return None


def apply_rollup(current: OrderStatus, item_statuses: Iterable[ItemStatus]) -> Optional[OrderStatus]:
    """The rolled-up status if it moves the order forward, else None."""
    if current in TERMINAL_ORDER_STATUSES:
        return None
    derived = rollup_order_status(item_statuses)
    if derived is None or order_rank(derived) <= order_rank(current):
        return None
    return derived


def reopen_target(current: OrderStatus) -> Optional[OrderStatus]:
    """
    Status an order takes when a new batch of items is appended.

    Returns CONFIRMED for orders that were already READY or DELIVERED,
    None when the current status stays.

    Raises:
        InvalidTransition: for cancelled orders
    """
    if current == OrderStatus.CANCELLED:
        raise InvalidTransition("Cancelled orders cannot take new items", current.value)
    if current in REOPENING_ORDER_STATUSES:
        return OrderStatus.CONFIRMED
    return None


# =============================================================================
# DISPLAY HELPERS
# =============================================================================

def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_since(created_at: datetime, now: Optional[datetime] = None) -> float:
    now = as_utc(now or datetime.now(timezone.utc))
    return (now - as_utc(created_at)).total_seconds() / 60


def priority_for(created_at: datetime, now: Optional[datetime] = None) -> str:
    """Kitchen priority label from order age."""
    settings = get_settings()
    age = minutes_since(created_at, now)
    if age > settings.kitchen_urgent_priority_minutes:
        return PRIORITY_URGENT
    if age > settings.kitchen_high_priority_minutes:
        return PRIORITY_HIGH
    return PRIORITY_NORMAL


def time_since(created_at: datetime, now: Optional[datetime] = None) -> str:
    minutes = int(minutes_since(created_at, now))
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 1440:
        return f"{minutes // 60}h ago"
    return f"{minutes // 1440}d ago"


def generate_order_number() -> str:
    """ORD-<epoch millis>-<4 random upper-case alphanumerics>."""
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"
