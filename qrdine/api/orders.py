"""
Order endpoints.

Customers place orders and add batches from the table (no staff header);
staff list orders, move them through the workflow and update single items.
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.api.deps import get_current_restaurant
from qrdine.core.config import get_settings
from qrdine.database import get_db
from qrdine.models import (
    ItemStatus,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Restaurant,
    Table,
    utcnow,
)
from qrdine.schemas import (
    AddItemsRequest,
    ErrorResponse,
    OrderCreate,
    OrderEnvelope,
    OrderItemCreate,
    OrderItemDetail,
    OrderItemEnvelope,
    OrderItemResponse,
    OrderItemStatusUpdate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummary,
)
from qrdine.services.order_workflow import (
    InvalidTransition,
    TERMINAL_ORDER_STATUSES,
    apply_rollup,
    generate_order_number,
    parse_order_status,
    reopen_target,
    validate_item_transition,
    validate_order_transition,
)
from qrdine.tasks import export_order_to_excel

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

async def _get_order(db: AsyncSession, order_id: int, restaurant_id: Optional[int] = None) -> Order:
    """Load an order with fresh items, optionally scoped to a restaurant."""
    query = (
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    if restaurant_id is not None:
        query = query.where(Order.restaurant_id == restaurant_id)

    order = (await db.execute(query)).scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def _get_owned_item(db: AsyncSession, item_id: int, restaurant: Restaurant) -> OrderItem:
    result = await db.execute(
        select(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .where(OrderItem.id == item_id, Order.restaurant_id == restaurant.id)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Order item not found")
    return item


async def _price_items(
    db: AsyncSession,
    restaurant_id: int,
    requested: list[OrderItemCreate],
    batch: int,
) -> tuple[list[OrderItem], float]:
    """
    Build order lines priced from the current menu.

    Raises:
        HTTPException 400: if any item is unknown, from another restaurant
            or unavailable
    """
    ids = {line.menu_item_id for line in requested}
    result = await db.execute(
        select(MenuItem).where(
            MenuItem.id.in_(ids),
            MenuItem.restaurant_id == restaurant_id,
            MenuItem.is_available.is_(True),
        )
    )
    menu = {m.id: m for m in result.scalars().all()}

    lines = []
    total = 0.0
    for line in requested:
        menu_item = menu.get(line.menu_item_id)
        if menu_item is None:
            raise HTTPException(
                status_code=400,
                detail=f"Menu item {line.menu_item_id} not found or not available",
            )
        total += menu_item.price * line.quantity
        lines.append(OrderItem(
            menu_item=menu_item,
            quantity=line.quantity,
            price=menu_item.price,
            notes=line.notes,
            status=ItemStatus.PENDING,
            batch=batch,
        ))

    return lines, round(total, 2)


def export_payload(order: Order) -> dict[str, Any]:
    """Flat order snapshot for the Excel export task."""
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "restaurant_id": order.restaurant_id,
        "table_number": order.table_number,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "items": json.dumps([
            {
                "name": item.menu_item.name,
                "quantity": item.quantity,
                "price": item.price,
                "notes": item.notes,
            }
            for item in order.items
        ]),
        "notes": order.notes,
        "total_amount": order.total_amount,
        "order_status": order.status.value,
        "created_at": order.created_at.isoformat(),
    }


def _mark_delivered(order: Order) -> None:
    order.completed_at = utcnow()


# =============================================================================
# CUSTOMER ENDPOINTS
# =============================================================================

@router.post(
    "",
    response_model=OrderEnvelope,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Place an order from a table",
)
async def create_order(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    logger.info(f"Order request for restaurant #{payload.restaurant_id}, table #{payload.table_id}")

    restaurant = (
        await db.execute(
            select(Restaurant).where(
                Restaurant.id == payload.restaurant_id,
                Restaurant.is_published.is_(True),
                Restaurant.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()
    if not restaurant:
        raise HTTPException(status_code=404, detail="Restaurant not found or not accepting orders")

    table = (
        await db.execute(
            select(Table).where(
                Table.id == payload.table_id,
                Table.restaurant_id == restaurant.id,
                Table.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()
    if not table:
        raise HTTPException(status_code=404, detail="Table not found or not available")

    lines, total = await _price_items(db, restaurant.id, payload.items, batch=1)

    order = Order(
        order_number=generate_order_number(),
        status=OrderStatus.PENDING,
        total_amount=total,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        notes=payload.notes,
        restaurant=restaurant,
        table=table,
        items=lines,
    )

    db.add(order)
    await db.commit()
    order = await _get_order(db, order.id)

    logger.info(f"Order {order.order_number} (#{order.id}) placed, total {order.total_amount}")

    # The order is committed; a broker outage must not turn it into an error
    try:
        export_order_to_excel.delay(export_payload(order))
    except Exception as e:
        logger.error(f"Could not queue export for order #{order.id}: {e}")

    return OrderEnvelope(
        message="Order placed successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get(
    "/{order_id}",
    response_model=OrderEnvelope,
    responses={404: {"model": ErrorResponse}},
    summary="Get an order",
)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """Order tracking for the customer who placed it."""
    order = await _get_order(db, order_id)
    return OrderEnvelope(message="Order found", order=OrderResponse.model_validate(order))


@router.post(
    "/{order_id}/add-items",
    response_model=OrderEnvelope,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Add a batch of items to an existing order",
)
async def add_items(
    order_id: int,
    payload: AddItemsRequest,
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """
    Append the items as the next batch.

    Orders already READY or DELIVERED are reopened (back to CONFIRMED);
    cancelled orders refuse new items.
    """
    order = await _get_order(db, order_id)

    if not order.restaurant.accepts_orders:
        raise HTTPException(status_code=400, detail="Restaurant is not accepting orders")

    reopened_as = reopen_target(order.status)
    batch = order.total_batches + 1

    lines, added = await _price_items(db, order.restaurant_id, payload.items, batch=batch)

    order.items.extend(lines)
    order.total_amount = round((order.total_amount or 0) + added, 2)

    if reopened_as is not None:
        logger.info(f"Order {order.order_number} reopened from {order.status.value}")
        order.status = reopened_as
        order.reopened_count = (order.reopened_count or 0) + 1
        order.completed_at = None

    await db.commit()
    order = await _get_order(db, order_id)

    logger.info(f"Order {order.order_number}: batch {batch} added ({len(lines)} items, +{added})")

    return OrderEnvelope(
        message="Items added to order successfully",
        order=OrderResponse.model_validate(order),
    )


# =============================================================================
# STAFF ENDPOINTS
# =============================================================================

@router.get("", response_model=OrderListResponse, summary="List orders")
async def list_orders(
    status: Optional[str] = Query(None, description="Order status, or 'all'"),
    table_id: Optional[int] = Query(None),
    sort: str = Query("newest", pattern="^(newest|oldest)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    query = select(Order).where(Order.restaurant_id == restaurant.id)
    count_query = select(func.count(Order.id)).where(Order.restaurant_id == restaurant.id)

    if status and status.lower() != "all":
        try:
            status_enum = parse_order_status(status)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        query = query.where(Order.status == status_enum)
        count_query = count_query.where(Order.status == status_enum)

    if table_id is not None:
        query = query.where(Order.table_id == table_id)
        count_query = count_query.where(Order.table_id == table_id)

    ordering = Order.created_at.asc() if sort == "oldest" else Order.created_at.desc()
    query = query.order_by(ordering, Order.id).offset(skip).limit(limit)

    total = (await db.execute(count_query)).scalar() or 0
    orders = (await db.execute(query)).scalars().all()

    return OrderListResponse(
        total=total,
        orders=[OrderResponse.model_validate(o) for o in orders],
        poll_seconds=settings.orders_poll_seconds,
    )


@router.put(
    "/{order_id}",
    response_model=OrderEnvelope,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Move an order to its next status",
)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """
    One step forward, or CANCELLED from any open status.

    Delivering an order also delivers its READY items.
    """
    order = await _get_order(db, order_id, restaurant.id)
    previous = order.status

    validate_order_transition(previous, payload.status, [i.status for i in order.items])

    if payload.status == OrderStatus.DELIVERED:
        for item in order.items:
            if item.status == ItemStatus.READY:
                item.status = ItemStatus.DELIVERED
        _mark_delivered(order)

    order.status = payload.status
    await db.commit()
    order = await _get_order(db, order_id)

    logger.info(f"Order {order.order_number}: {previous.value} -> {order.status.value}")

    return OrderEnvelope(
        message="Order status updated successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get(
    "/items/{item_id}",
    response_model=OrderItemDetail,
    responses={404: {"model": ErrorResponse}},
    summary="Get an order item",
)
async def get_order_item(
    item_id: int,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> OrderItemDetail:
    item = await _get_owned_item(db, item_id, restaurant)
    return OrderItemDetail(
        order_item=OrderItemResponse.model_validate(item),
        order=OrderSummary.model_validate(item.order),
    )


@router.put(
    "/items/{item_id}",
    response_model=OrderItemEnvelope,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Move an order item to its next status",
)
async def update_order_item(
    item_id: int,
    payload: OrderItemStatusUpdate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> OrderItemEnvelope:
    """
    Kitchen action on a single item.

    Sending the current status with new notes only updates the notes. The
    order status follows its items forward (see ``apply_rollup``).
    """
    item = await _get_owned_item(db, item_id, restaurant)
    order = await _get_order(db, item.order_id)

    if order.status in TERMINAL_ORDER_STATUSES:
        raise InvalidTransition(
            f"Order is {order.status.value}; its items can no longer change",
            order.status.value,
            payload.status.value,
        )

    if payload.status != item.status:
        validate_item_transition(item.status, payload.status)
        item.status = payload.status

    if payload.notes:
        item.notes = payload.notes

    rolled_up = apply_rollup(order.status, [i.status for i in order.items])
    if rolled_up is not None:
        logger.info(f"Order {order.order_number}: {order.status.value} -> {rolled_up.value} (items)")
        order.status = rolled_up
        if rolled_up == OrderStatus.DELIVERED:
            _mark_delivered(order)

    await db.commit()
    await db.refresh(item)

    return OrderItemEnvelope(
        message="Order item updated successfully",
        order_item=OrderItemResponse.model_validate(item),
        order_status=rolled_up,
    )
