"""
Menu management endpoints, including the Excel template and bulk import.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.api.deps import get_current_restaurant
from qrdine.database import get_db
from qrdine.models import MenuItem, OrderItem, Restaurant
from qrdine.schemas import (
    ErrorResponse,
    MenuImportResponse,
    MenuItemCreate,
    MenuItemEnvelope,
    MenuItemResponse,
    MenuItemUpdate,
    MenuListResponse,
    MessageResponse,
)
from qrdine.services.excel_manager import XLSX_MEDIA_TYPE, ExcelManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menu", tags=["Menu"])


async def _get_owned_item(db: AsyncSession, item_id: int, restaurant: Restaurant) -> MenuItem:
    result = await db.execute(
        select(MenuItem).where(
            MenuItem.id == item_id,
            MenuItem.restaurant_id == restaurant.id,
        )
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item


@router.get("", response_model=MenuListResponse, summary="List menu items")
async def list_menu(
    category: Optional[str] = Query(None, description="Category name, or 'all'"),
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> MenuListResponse:
    query = (
        select(MenuItem)
        .where(MenuItem.restaurant_id == restaurant.id)
        .order_by(MenuItem.category, MenuItem.name)
    )
    if category and category != "all":
        query = query.where(MenuItem.category == category)

    items = (await db.execute(query)).scalars().all()

    categories = (
        await db.execute(
            select(MenuItem.category)
            .where(MenuItem.restaurant_id == restaurant.id)
            .distinct()
            .order_by(MenuItem.category)
        )
    ).scalars().all()

    return MenuListResponse(
        menu_items=[MenuItemResponse.model_validate(i) for i in items],
        categories=list(categories),
    )


@router.post(
    "",
    response_model=MenuItemEnvelope,
    status_code=201,
    summary="Create a menu item",
)
async def create_menu_item(
    payload: MenuItemCreate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    item = MenuItem(**payload.model_dump(), restaurant_id=restaurant.id)
    db.add(item)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Menu item #{item.id} '{item.name}' created for restaurant #{restaurant.id}")

    return MenuItemEnvelope(
        message="Menu item created successfully",
        menu_item=MenuItemResponse.model_validate(item),
    )


# =============================================================================
# EXCEL TEMPLATE / IMPORT
# =============================================================================

@router.get(
    "/excel",
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
    summary="Download the menu import template",
)
async def download_menu_template(
    restaurant: Restaurant = Depends(get_current_restaurant),
) -> Response:
    content = ExcelManager.build_menu_template()
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="menu_template.xlsx"'},
    )


@router.post(
    "/excel",
    response_model=MenuImportResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Import menu items from an Excel workbook",
)
async def upload_menu(
    file: Optional[UploadFile] = File(None),
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> MenuImportResponse:
    """
    Import every row of the first sheet, or nothing.

    On validation errors the response is 400 with one entry per bad row,
    numbered as in the spreadsheet.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    content = await file.read()
    try:
        parsed = ExcelManager.parse_menu_upload(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not parsed.is_valid:
        raise HTTPException(
            status_code=400,
            detail={"error": "Validation errors", "details": parsed.errors},
        )

    items = [MenuItem(**row, restaurant_id=restaurant.id) for row in parsed.items]
    db.add_all(items)
    await db.commit()
    for item in items:
        await db.refresh(item)

    logger.info(f"Imported {len(items)} menu items for restaurant #{restaurant.id}")

    return MenuImportResponse(
        message=f"Successfully imported {len(items)} menu items",
        imported=len(items),
        menu_items=[MenuItemResponse.model_validate(i) for i in items],
    )


# =============================================================================
# SINGLE ITEM
# =============================================================================

@router.put("/{item_id}", response_model=MenuItemEnvelope, summary="Update a menu item")
async def update_menu_item(
    item_id: int,
    payload: MenuItemUpdate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    item = await _get_owned_item(db, item_id, restaurant)

    changes = payload.model_dump(exclude_unset=True)
    # Null or blank required fields mean "leave unchanged"
    for field in ("name", "category", "price", "is_available"):
        if field in changes and changes[field] is None:
            changes.pop(field)

    for field, value in changes.items():
        setattr(item, field, value)

    await db.commit()
    await db.refresh(item)

    logger.info(f"Menu item #{item.id} updated: {sorted(changes)}")

    return MenuItemEnvelope(
        message="Menu item updated successfully",
        menu_item=MenuItemResponse.model_validate(item),
    )


@router.delete(
    "/{item_id}",
    response_model=MessageResponse,
    responses={409: {"model": ErrorResponse}},
    summary="Delete a menu item",
)
async def delete_menu_item(
    item_id: int,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    item = await _get_owned_item(db, item_id, restaurant)

    ordered = await db.execute(
        select(func.count(OrderItem.id)).where(OrderItem.menu_item_id == item.id)
    )
    if ordered.scalar():
        raise HTTPException(
            status_code=409,
            detail="Menu item appears on existing orders; mark it unavailable instead",
        )

    await db.delete(item)
    await db.commit()

    logger.info(f"Menu item #{item_id} deleted")

    return MessageResponse(message="Menu item deleted successfully")
