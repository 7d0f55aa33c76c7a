"""
Dashboard and reports endpoints. Figures are computed in qrdine.services.reports.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.api.deps import get_current_restaurant
from qrdine.core.config import get_settings
from qrdine.database import get_db
from qrdine.models import MenuItem, Order, Restaurant, Table
from qrdine.services.reports import build_dashboard, build_report, dashboard_windows, default_range

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analytics"])


async def _inventory_counts(db: AsyncSession, restaurant_id: int) -> dict[str, int]:
    async def count(query) -> int:
        return (await db.execute(query)).scalar() or 0

    return {
        "total_tables": await count(
            select(func.count(Table.id)).where(Table.restaurant_id == restaurant_id)
        ),
        "active_tables": await count(
            select(func.count(Table.id)).where(
                Table.restaurant_id == restaurant_id, Table.is_active.is_(True)
            )
        ),
        "total_menu_items": await count(
            select(func.count(MenuItem.id)).where(MenuItem.restaurant_id == restaurant_id)
        ),
        "active_menu_items": await count(
            select(func.count(MenuItem.id)).where(
                MenuItem.restaurant_id == restaurant_id, MenuItem.is_available.is_(True)
            )
        ),
    }


async def _orders_between(
    db: AsyncSession,
    restaurant_id: int,
    start: datetime,
    end: Optional[datetime] = None,
    inclusive_end: bool = True,
) -> list[Order]:
    query = select(Order).where(Order.restaurant_id == restaurant_id, Order.created_at >= start)
    if end is not None:
        query = query.where(Order.created_at <= end if inclusive_end else Order.created_at < end)
    return list((await db.execute(query.order_by(Order.created_at))).scalars().all())


def _restaurant_summary(restaurant: Restaurant) -> dict[str, Any]:
    return {"id": restaurant.id, "name": restaurant.name, "currency": restaurant.currency}


@router.get("/api/analytics/dashboard", summary="Dashboard metrics")
async def dashboard(
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    windows = dashboard_windows()
    since = min(windows["last_month_start"], windows["week_start"])

    orders = await _orders_between(db, restaurant.id, since)
    recent = (
        await db.execute(
            select(Order)
            .where(Order.restaurant_id == restaurant.id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(10)
        )
    ).scalars().all()

    return build_dashboard(
        orders,
        list(recent),
        await _inventory_counts(db, restaurant.id),
        restaurant=_restaurant_summary(restaurant),
        now=windows["now"],
    )


@router.get("/api/reports", summary="Reports for a date range")
async def reports(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    report_type: str = Query("overview", alias="type"),
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Report sections for [start_date, end_date], defaulting to the last
    ``report_default_days`` days. Growth compares against the period of
    the same length right before ``start_date``.
    """
    try:
        start, end = default_range(start_date, end_date, settings.report_default_days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    orders = await _orders_between(db, restaurant.id, start, end)
    previous = await _orders_between(
        db, restaurant.id, start - (end - start), start, inclusive_end=False
    )

    logger.info(
        f"Report for restaurant #{restaurant.id}: {start.date()} to {end.date()}, "
        f"{len(orders)} orders"
    )

    return build_report(
        orders,
        previous,
        start,
        end,
        await _inventory_counts(db, restaurant.id),
        restaurant=_restaurant_summary(restaurant),
        report_type=report_type,
    )
