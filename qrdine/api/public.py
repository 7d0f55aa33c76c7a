"""
Customer-facing lookups reached from a scanned QR code. No staff header needed.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.api.tables import table_sort_key
from qrdine.database import get_db
from qrdine.models import MenuItem, Restaurant, Table
from qrdine.schemas import (
    ErrorResponse,
    PublicMenuItem,
    PublicMenuResponse,
    PublicRestaurant,
    PublicRestaurantBrief,
    PublicTable,
    PublicTablesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/public", tags=["Public"])


async def get_open_restaurant(db: AsyncSession, restaurant_id: int, detail: str) -> Restaurant:
    """A restaurant that is active and has published its menu, else 404."""
    result = await db.execute(
        select(Restaurant).where(
            Restaurant.id == restaurant_id,
            Restaurant.is_published.is_(True),
            Restaurant.is_active.is_(True),
        )
    )
    restaurant = result.scalar_one_or_none()
    if not restaurant:
        raise HTTPException(status_code=404, detail=detail)
    return restaurant


@router.get(
    "/menu/{restaurant_id}",
    response_model=PublicMenuResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Published menu grouped by category",
)
async def public_menu(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> PublicMenuResponse:
    restaurant = await get_open_restaurant(
        db, restaurant_id, "Restaurant not found or menu not published"
    )

    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.restaurant_id == restaurant.id, MenuItem.is_available.is_(True))
        .order_by(MenuItem.category, MenuItem.name)
    )

    menu: dict[str, list[PublicMenuItem]] = {}
    for item in result.scalars().all():
        menu.setdefault(item.category, []).append(PublicMenuItem.model_validate(item))

    return PublicMenuResponse(
        restaurant=PublicRestaurant.model_validate(restaurant),
        menu=menu,
        categories=sorted(menu),
    )


@router.get(
    "/tables/{restaurant_id}",
    response_model=PublicTablesResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Active tables of a restaurant",
)
async def public_tables(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> PublicTablesResponse:
    restaurant = await get_open_restaurant(
        db, restaurant_id, "Restaurant not found or not accepting orders"
    )

    result = await db.execute(
        select(Table).where(Table.restaurant_id == restaurant.id, Table.is_active.is_(True))
    )
    tables = sorted(result.scalars().all(), key=table_sort_key)

    return PublicTablesResponse(
        restaurant=PublicRestaurantBrief.model_validate(restaurant),
        tables=[PublicTable.model_validate(t) for t in tables],
    )
