"""
Restaurant account endpoints: signup, settings and menu publishing.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import generate_password_hash

from qrdine.api.deps import get_current_restaurant
from qrdine.core.config import get_settings
from qrdine.database import get_db
from qrdine.models import MenuItem, Restaurant
from qrdine.schemas import (
    ErrorResponse,
    PublishEnvelope,
    PublishStatusResponse,
    PublishUpdate,
    RestaurantEnvelope,
    RestaurantResponse,
    RestaurantSettingsUpdate,
    RestaurantSignup,
)

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Restaurant"])


async def _available_items_count(db: AsyncSession, restaurant_id: int) -> int:
    result = await db.execute(
        select(func.count(MenuItem.id)).where(
            MenuItem.restaurant_id == restaurant_id,
            MenuItem.is_available.is_(True),
        )
    )
    return result.scalar() or 0


@router.post(
    "/api/auth/signup",
    response_model=RestaurantEnvelope,
    status_code=201,
    responses={400: {"model": ErrorResponse}},
    summary="Register a restaurant",
)
async def signup(
    payload: RestaurantSignup,
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    existing = await db.execute(select(Restaurant.id).where(Restaurant.email == payload.email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="Restaurant with this email already exists")

    restaurant = Restaurant(
        email=payload.email,
        password_hash=generate_password_hash(payload.password, method=settings.password_hash_method),
        name=payload.name.strip(),
        address=payload.address.strip(),
        phone=payload.phone.strip(),
        description=payload.description,
        website=payload.website,
        currency=settings.default_currency,
    )

    db.add(restaurant)
    await db.commit()
    await db.refresh(restaurant)

    logger.info(f"Restaurant #{restaurant.id} registered ({restaurant.email})")

    return RestaurantEnvelope(
        message="Restaurant created successfully",
        restaurant=RestaurantResponse.model_validate(restaurant),
    )


# =============================================================================
# SETTINGS
# =============================================================================

@router.get(
    "/api/restaurant/settings",
    response_model=RestaurantEnvelope,
    summary="Get restaurant settings",
)
async def get_restaurant_settings(
    restaurant: Restaurant = Depends(get_current_restaurant),
) -> RestaurantEnvelope:
    return RestaurantEnvelope(
        message="Restaurant settings",
        restaurant=RestaurantResponse.model_validate(restaurant),
    )


@router.put(
    "/api/restaurant/settings",
    response_model=RestaurantEnvelope,
    summary="Update restaurant settings",
)
async def update_restaurant_settings(
    payload: RestaurantSettingsUpdate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    restaurant.name = payload.name.strip()
    restaurant.address = payload.address.strip()
    restaurant.phone = payload.phone.strip()
    restaurant.description = payload.description
    restaurant.website = payload.website
    restaurant.logo = payload.logo
    restaurant.currency = payload.currency or settings.default_currency

    await db.commit()
    await db.refresh(restaurant)

    logger.info(f"Restaurant #{restaurant.id} settings updated")

    return RestaurantEnvelope(
        message="Settings updated successfully",
        restaurant=RestaurantResponse.model_validate(restaurant),
    )


# =============================================================================
# PUBLISHING
# =============================================================================

@router.get(
    "/api/restaurant/publish",
    response_model=PublishEnvelope,
    summary="Get menu publish status",
)
async def get_publish_status(
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> PublishEnvelope:
    return PublishEnvelope(
        message=f"Menu is {'published' if restaurant.is_published else 'not published'}",
        restaurant=PublishStatusResponse(
            id=restaurant.id,
            name=restaurant.name,
            is_published=restaurant.is_published,
            available_menu_items_count=await _available_items_count(db, restaurant.id),
        ),
    )


@router.put(
    "/api/restaurant/publish",
    response_model=PublishEnvelope,
    summary="Publish or unpublish the menu",
)
async def update_publish_status(
    payload: PublishUpdate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> PublishEnvelope:
    restaurant.is_published = payload.is_published
    await db.commit()

    state = "published" if payload.is_published else "unpublished"
    logger.info(f"Restaurant #{restaurant.id} menu {state}")

    return PublishEnvelope(
        message=f"Menu {state} successfully",
        restaurant=PublishStatusResponse(
            id=restaurant.id,
            name=restaurant.name,
            is_published=restaurant.is_published,
        ),
    )
