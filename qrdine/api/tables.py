"""
Table management endpoints and QR scan URLs.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.api.deps import base_url, get_current_restaurant
from qrdine.database import get_db
from qrdine.models import Order, Restaurant, Table
from qrdine.schemas import (
    ErrorResponse,
    MessageResponse,
    QRCodeResponse,
    TableCreate,
    TableEnvelope,
    TableListResponse,
    TableResponse,
    TableUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tables", tags=["Tables"])


def table_sort_key(table: Table) -> tuple:
    """Numeric table numbers first in numeric order, then the rest alphabetically."""
    number = table.table_number
    if number.isdigit():
        return (0, int(number), number)
    return (1, 0, number.lower())


def scan_url(request: Request, table: Table) -> str:
    return f"{base_url(request)}/order/{table.restaurant_id}/{table.id}"


async def _get_owned_table(db: AsyncSession, table_id: int, restaurant: Restaurant) -> Table:
    result = await db.execute(
        select(Table).where(Table.id == table_id, Table.restaurant_id == restaurant.id)
    )
    table = result.scalar_one_or_none()
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    return table


async def _number_taken(
    db: AsyncSession,
    restaurant: Restaurant,
    table_number: str,
    exclude_id: Optional[int] = None,
) -> bool:
    query = select(Table.id).where(
        Table.restaurant_id == restaurant.id,
        Table.table_number == table_number,
    )
    if exclude_id is not None:
        query = query.where(Table.id != exclude_id)
    return (await db.execute(query)).first() is not None


@router.get("", response_model=TableListResponse, summary="List tables")
async def list_tables(
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> TableListResponse:
    result = await db.execute(select(Table).where(Table.restaurant_id == restaurant.id))
    tables = sorted(result.scalars().all(), key=table_sort_key)
    return TableListResponse(tables=[TableResponse.model_validate(t) for t in tables])


@router.post(
    "",
    response_model=TableEnvelope,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    summary="Create a table",
)
async def create_table(
    payload: TableCreate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> TableEnvelope:
    if await _number_taken(db, restaurant, payload.table_number):
        raise HTTPException(status_code=400, detail="Table number already exists")

    table = Table(
        table_number=payload.table_number,
        qr_code=str(uuid.uuid4()),
        restaurant_id=restaurant.id,
    )
    db.add(table)
    await db.commit()
    await db.refresh(table)

    logger.info(f"Table {table.table_number} (#{table.id}) created for restaurant #{restaurant.id}")

    return TableEnvelope(
        message="Table created successfully",
        table=TableResponse.model_validate(table),
    )


@router.put(
    "/{table_id}",
    response_model=TableEnvelope,
    responses={400: {"model": ErrorResponse}},
    summary="Rename or (de)activate a table",
)
async def update_table(
    table_id: int,
    payload: TableUpdate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> TableEnvelope:
    table = await _get_owned_table(db, table_id, restaurant)

    if payload.table_number and payload.table_number != table.table_number:
        if len(payload.table_number) > 20:
            raise HTTPException(status_code=400, detail="Table number must be 20 characters or less")
        if await _number_taken(db, restaurant, payload.table_number, exclude_id=table.id):
            raise HTTPException(status_code=400, detail="Table number already exists")
        table.table_number = payload.table_number

    if payload.is_active is not None:
        table.is_active = payload.is_active

    await db.commit()
    await db.refresh(table)

    logger.info(f"Table #{table.id} updated")

    return TableEnvelope(
        message="Table updated successfully",
        table=TableResponse.model_validate(table),
    )


@router.delete(
    "/{table_id}",
    response_model=MessageResponse,
    responses={409: {"model": ErrorResponse}},
    summary="Delete a table",
)
async def delete_table(
    table_id: int,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    table = await _get_owned_table(db, table_id, restaurant)

    ordered = await db.execute(select(func.count(Order.id)).where(Order.table_id == table.id))
    if ordered.scalar():
        raise HTTPException(
            status_code=409,
            detail="Table has existing orders; deactivate it instead",
        )

    await db.delete(table)
    await db.commit()

    logger.info(f"Table #{table_id} deleted")

    return MessageResponse(message="Table deleted successfully")


@router.get("/{table_id}/qrcode", response_model=QRCodeResponse, summary="QR scan URL for a table")
async def table_qrcode(
    table_id: int,
    request: Request,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> QRCodeResponse:
    """
    The URL customers reach by scanning the table's QR code.

    Rendering the QR image is left to the client.
    """
    table = await _get_owned_table(db, table_id, restaurant)
    return QRCodeResponse(
        qr_url=scan_url(request, table),
        qr_code=table.qr_code,
        table_number=table.table_number,
    )
