"""
Kitchen display feed, polled by the kitchen screen.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.api.deps import get_current_restaurant
from qrdine.database import get_db
from qrdine.models import Order, Restaurant
from qrdine.services.kitchen import ALL, build_kitchen_view
from qrdine.services.order_workflow import TERMINAL_ORDER_STATUSES, parse_item_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/kitchen", tags=["Kitchen"])


@router.get("/orders", summary="Open orders and items for the kitchen display")
async def kitchen_orders(
    status: Optional[str] = Query(
        None, description="Item status (PENDING, PREPARING, READY), not order status; or 'all'"
    ),
    category: Optional[str] = Query(None, description="Menu category, or 'all'"),
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    item_status = None
    if status and status.lower() != ALL:
        try:
            item_status = parse_item_status(status)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    result = await db.execute(
        select(Order)
        .where(
            Order.restaurant_id == restaurant.id,
            Order.status.not_in(TERMINAL_ORDER_STATUSES),
        )
        .order_by(Order.created_at.asc(), Order.id)
        .execution_options(populate_existing=True)
    )

    return build_kitchen_view(result.scalars().all(), category=category, status=item_status)
