"""
Shared route dependencies.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.database import get_db
from qrdine.models import Restaurant

settings = get_settings()
logger = logging.getLogger(__name__)


async def get_current_restaurant(
    x_restaurant_id: Optional[int] = Header(None, alias="x-restaurant-id"),
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    """
    Resolve the staff member's restaurant.

    The restaurant id header is set by whatever sits in front of the API
    (session middleware, gateway); this service trusts it.
    """
    if x_restaurant_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    result = await db.execute(select(Restaurant).where(Restaurant.id == x_restaurant_id))
    restaurant = result.scalar_one_or_none()

    if not restaurant:
        raise HTTPException(status_code=404, detail="Restaurant not found")

    return restaurant


def base_url(request: Request) -> str:
    """Public origin of the request, honouring reverse proxy headers."""
    host = request.headers.get("x-forwarded-host") or request.headers.get("host")
    if not host:
        return settings.app_base_url.rstrip("/")
    proto = request.headers.get("x-forwarded-proto") or request.url.scheme or "http"
    return f"{proto}://{host}"
