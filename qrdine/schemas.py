"""
Pydantic Schemas for Request/Response Validation

Covers the staff dashboards (restaurant settings, menu, tables, orders,
kitchen) and the public customer flow (menu browsing, ordering, adding
items to an open order).

Version: 1.0.0
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, StrictBool, computed_field, field_validator

from qrdine.models import ItemStatus, OrderStatus
from qrdine.services.order_workflow import (
    next_item_status,
    next_order_status,
    parse_item_status,
    parse_order_status,
)


def _strip_or_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# =============================================================================
# RESTAURANT SCHEMAS
# =============================================================================

class RestaurantSignup(BaseModel):
    """Request schema for registering a restaurant."""
    email: str = Field(..., max_length=255, examples=["owner@trattoria.ie"])
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=100, examples=["Trattoria Roma"])
    address: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=30)
    description: Optional[str] = Field(None, max_length=1000)
    website: Optional[str] = Field(None, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not re.match(r"^[\w\.\+-]+@[\w\.-]+\.\w+$", v):
            raise ValueError("Invalid email format")
        return v


class RestaurantSettingsUpdate(BaseModel):
    """Request schema for the restaurant settings page."""
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=30)
    description: Optional[str] = Field(None, max_length=1000)
    website: Optional[str] = Field(None, max_length=255)
    logo: Optional[str] = Field(None, max_length=500)
    currency: Optional[str] = Field(None, max_length=5, examples=["€", "$"])

    @field_validator("description", "website", "logo", "currency")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class PublishUpdate(BaseModel):
    is_published: StrictBool


class RestaurantResponse(BaseModel):
    id: int
    email: str
    name: str
    description: Optional[str]
    address: str
    phone: str
    website: Optional[str]
    logo: Optional[str]
    currency: str
    is_active: bool
    is_published: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RestaurantEnvelope(BaseModel):
    success: bool = True
    message: str
    restaurant: RestaurantResponse


class PublishStatusResponse(BaseModel):
    id: int
    name: str
    is_published: bool
    available_menu_items_count: Optional[int] = None


class PublishEnvelope(BaseModel):
    success: bool = True
    message: str
    restaurant: PublishStatusResponse


class PublicRestaurant(BaseModel):
    """What customers see about a restaurant."""
    id: int
    name: str
    description: Optional[str]
    address: str
    phone: str
    website: Optional[str]
    logo: Optional[str]
    currency: str

    class Config:
        from_attributes = True


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Margherita Pizza"])
    description: Optional[str] = Field(None, max_length=1000)
    price: float = Field(..., gt=0, allow_inf_nan=False, examples=[12.99])
    category: str = Field(..., min_length=1, max_length=50, examples=["Pizza"])
    image: Optional[str] = Field(None, max_length=500)
    is_available: bool = True

    @field_validator("name", "category")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("description", "image")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class MenuItemUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    image: Optional[str] = Field(None, max_length=500)
    is_available: Optional[bool] = None

    @field_validator("name", "category", "description", "image")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class MenuItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price: float
    category: str
    image: Optional[str]
    is_available: bool
    restaurant_id: int
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class MenuItemBrief(BaseModel):
    id: int
    name: str
    description: Optional[str]
    category: str
    price: float

    class Config:
        from_attributes = True


class MenuListResponse(BaseModel):
    menu_items: List[MenuItemResponse]
    categories: List[str]


class MenuItemEnvelope(BaseModel):
    success: bool = True
    message: str
    menu_item: MenuItemResponse


class MenuImportResponse(BaseModel):
    success: bool = True
    message: str
    imported: int
    menu_items: List[MenuItemResponse]


class PublicMenuItem(BaseModel):
    id: int
    name: str
    description: Optional[str]
    price: float
    image: Optional[str]

    class Config:
        from_attributes = True


class PublicMenuResponse(BaseModel):
    restaurant: PublicRestaurant
    menu: Dict[str, List[PublicMenuItem]]
    categories: List[str]


# =============================================================================
# TABLE SCHEMAS
# =============================================================================

class TableCreate(BaseModel):
    table_number: Union[str, int] = Field(..., examples=["12"])

    @field_validator("table_number")
    @classmethod
    def normalize_number(cls, v: Union[str, int]) -> str:
        v = str(v).strip()
        if not v:
            raise ValueError("Table number is required")
        if len(v) > 20:
            raise ValueError("Table number must be 20 characters or less")
        return v


class TableUpdate(BaseModel):
    table_number: Optional[Union[str, int]] = None
    is_active: Optional[bool] = None

    @field_validator("table_number")
    @classmethod
    def normalize_number(cls, v: Optional[Union[str, int]]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class TableResponse(BaseModel):
    id: int
    table_number: str
    qr_code: str
    is_active: bool
    restaurant_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class TableListResponse(BaseModel):
    tables: List[TableResponse]


class TableEnvelope(BaseModel):
    success: bool = True
    message: str
    table: TableResponse


class QRCodeResponse(BaseModel):
    """The URL a table's QR code encodes; rendering the image is left to the client."""
    qr_url: str
    qr_code: str
    table_number: str


class PublicTable(BaseModel):
    id: int
    table_number: str

    class Config:
        from_attributes = True


class PublicRestaurantBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class PublicTablesResponse(BaseModel):
    restaurant: PublicRestaurantBrief
    tables: List[PublicTable]


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single item in an order."""
    menu_item_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    notes: Optional[str] = Field(None, max_length=200)

    @field_validator("notes")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class OrderCreate(BaseModel):
    """Request schema for placing an order from a table."""
    restaurant_id: int = Field(..., ge=1)
    table_id: int = Field(..., ge=1)
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = Field(None, max_length=500)
    items: List[OrderItemCreate] = Field(..., min_length=1)

    @field_validator("customer_name", "customer_phone", "notes")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class AddItemsRequest(BaseModel):
    """A new batch of items for an existing order."""
    items: List[OrderItemCreate] = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        if isinstance(v, OrderStatus):
            return v
        return parse_order_status(str(v))


class OrderItemStatusUpdate(BaseModel):
    status: ItemStatus
    notes: Optional[str] = Field(None, max_length=200)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        if isinstance(v, ItemStatus):
            return v
        return parse_item_status(str(v))


class OrderItemResponse(BaseModel):
    id: int
    quantity: int
    price: float
    notes: Optional[str]
    status: ItemStatus
    batch: int
    menu_item_id: int
    menu_item: MenuItemBrief
    line_total: float
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

    @computed_field
    @property
    def next_status(self) -> Optional[ItemStatus]:
        return next_item_status(self.status)


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    order_number: str
    status: OrderStatus
    total_amount: float
    customer_name: Optional[str]
    customer_phone: Optional[str]
    notes: Optional[str]
    restaurant_id: int
    table_id: int
    table_number: Optional[str]
    reopened_count: int
    is_reopened: bool
    total_batches: int
    is_complete: bool
    items: List[OrderItemResponse]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

    @computed_field
    @property
    def next_status(self) -> Optional[OrderStatus]:
        return next_order_status(self.status)


class OrderEnvelope(BaseModel):
    success: bool = True
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]
    poll_seconds: int


class OrderItemEnvelope(BaseModel):
    success: bool = True
    message: str
    order_item: OrderItemResponse
    order_status: Optional[OrderStatus] = None


class OrderSummary(BaseModel):
    id: int
    order_number: str
    status: OrderStatus
    customer_name: Optional[str]
    customer_phone: Optional[str]
    table_number: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class OrderItemDetail(BaseModel):
    order_item: OrderItemResponse
    order: OrderSummary


# =============================================================================
# GENERIC SCHEMAS
# =============================================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[Union[str, list, dict]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    timestamp: datetime
