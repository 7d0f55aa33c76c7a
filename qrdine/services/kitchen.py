"""
Kitchen Display Aggregation

Turns the open orders of a restaurant into the payload polled by the
kitchen screen: items grouped by order and batch, by menu category, and
as one flat FIFO list, plus per-category counters.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from qrdine.core.config import get_settings
from qrdine.models import ItemStatus, Order, OrderItem
from qrdine.services.order_workflow import (
    as_utc,
    item_rank,
    next_item_status,
    priority_for,
    time_since,
)

logger = logging.getLogger(__name__)

ALL = "all"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


def batch_info(item: OrderItem) -> dict[str, Any]:
    return {
        "number": item.batch,
        "is_original": item.batch == 1,
        "is_new_addition": item.batch > 1,
    }


def order_info(order: Order, now: datetime) -> dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "table_number": order.table_number,
        "created_at": _iso(order.created_at),
        "order_status": order.status.value,
        "is_reopened": order.is_reopened,
        "total_batches": order.total_batches,
        "priority": priority_for(order.created_at, now),
        "time_since": time_since(order.created_at, now),
    }


def item_payload(item: OrderItem) -> dict[str, Any]:
    nxt = next_item_status(item.status)
    menu_item = item.menu_item
    return {
        "id": item.id,
        "quantity": item.quantity,
        "price": item.price,
        "notes": item.notes,
        "status": item.status.value,
        "next_status": nxt.value if nxt else None,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
        "menu_item": {
            "id": menu_item.id,
            "name": menu_item.name,
            "description": menu_item.description,
            "category": menu_item.category,
            "price": menu_item.price,
        },
        "batch": batch_info(item),
    }


def _active_items(
    order: Order,
    category: Optional[str],
    status: Optional[ItemStatus],
) -> list[OrderItem]:
    items = [item for item in order.items if item.status != ItemStatus.DELIVERED]
    if status is not None:
        items = [item for item in items if item.status == status]
    if category and category.lower() != ALL:
        wanted = category.lower()
        items = [item for item in items if item.menu_item.category.lower() == wanted]
    # Pending work first, oldest first within a status
    return sorted(items, key=lambda i: (item_rank(i.status), as_utc(i.created_at), i.id))


def _count(items: Iterable[dict[str, Any]], status: ItemStatus) -> int:
    return sum(1 for item in items if item["status"] == status.value)


def build_kitchen_view(
    orders: Iterable[Order],
    category: Optional[str] = None,
    status: Optional[ItemStatus] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Build the kitchen payload.

    Args:
        orders: Open orders, oldest first, with items loaded
        category: Optional menu category filter (case-insensitive, "all" disables)
        status: Optional item status filter
        now: Reference time for priority labels

    Returns:
        Dictionary with orders, items_by_category, all_items, category_stats
        and item counters
    """
    now = now or datetime.now(timezone.utc)

    kitchen_orders = []
    items_by_category: dict[str, list[dict[str, Any]]] = {}
    all_items: list[dict[str, Any]] = []

    for order in orders:
        items = _active_items(order, category, status)
        if not items:
            continue

        info = order_info(order, now)
        batches: dict[int, list[dict[str, Any]]] = {}

        for item in items:
            payload = item_payload(item)
            batches.setdefault(item.batch, []).append(payload)

            enriched = {**payload, "order": info, "priority": info["priority"]}
            items_by_category.setdefault(item.menu_item.category, []).append(enriched)
            all_items.append(enriched)

        kitchen_orders.append({
            **info,
            "status": order.status.value,
            "is_complete": order.is_complete,
            "notes": order.notes,
            "batches": [
                {
                    "number": number,
                    "is_original": number == 1,
                    "items": batch_items,
                }
                for number, batch_items in sorted(batches.items())
            ],
        })

    category_stats = [
        {
            "category": name,
            "total_items": len(cat_items),
            "pending_items": _count(cat_items, ItemStatus.PENDING),
            "preparing_items": _count(cat_items, ItemStatus.PREPARING),
            "ready_items": _count(cat_items, ItemStatus.READY),
        }
        for name, cat_items in sorted(items_by_category.items())
    ]

    logger.debug(f"Kitchen view: {len(kitchen_orders)} orders, {len(all_items)} items")

    return {
        "orders": kitchen_orders,
        "items_by_category": items_by_category,
        "all_items": all_items,
        "category_stats": category_stats,
        "total_orders": len(kitchen_orders),
        "total_items": len(all_items),
        "pending_items": _count(all_items, ItemStatus.PENDING),
        "preparing_items": _count(all_items, ItemStatus.PREPARING),
        "ready_items": _count(all_items, ItemStatus.READY),
        "poll_seconds": get_settings().kitchen_poll_seconds,
        "generated_at": now.isoformat(),
    }
