"""
SQLAlchemy Database Models

Relational records for table-side QR ordering:
- Restaurants (staff accounts) and their tables
- Menu items grouped by category
- Orders placed from a table, with items added in batches

Version: 1.0.0
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from qrdine.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class ItemStatus(str, enum.Enum):
    """Kitchen status of a single ordered item."""
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERED = "DELIVERED"


class Restaurant(Base):
    """
    A restaurant account.

    The restaurant id doubles as the staff identity for the dashboards.
    Customers can only order once the menu is published and the
    restaurant is active.
    """
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # ACCOUNT
    # =========================================================================
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    # =========================================================================
    # PROFILE
    # =========================================================================
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=False)
    website = Column(String(255), nullable=True)
    logo = Column(String(500), nullable=True)
    currency = Column(String(5), nullable=False, default="€")

    # =========================================================================
    # VISIBILITY
    # =========================================================================
    is_active = Column(Boolean, nullable=False, default=True)
    is_published = Column(Boolean, nullable=False, default=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    @property
    def accepts_orders(self) -> bool:
        return bool(self.is_active and self.is_published)

    def __repr__(self):
        return f"<Restaurant #{self.id} - {self.name}>"


class Table(Base):
    """A physical table; its QR code encodes the ordering URL."""
    __tablename__ = "tables"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_tables_restaurant_number"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_number = Column(String(20), nullable=False)
    qr_code = Column(String(36), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<Table {self.table_number} (restaurant #{self.restaurant_id})>"


class MenuItem(Base):
    """A dish or drink on a restaurant's menu."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    image = Column(String(500), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} ({self.category})>"


class Order(Base):
    """
    An order placed from a table.

    Items arrive in batches: batch 1 is the original order, every later
    add-items call appends the next batch number. Adding a batch to an
    order that was already READY or DELIVERED reopens it.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(40), nullable=False, unique=True)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    reopened_count = Column(Integer, nullable=False, default=0)

    # =========================================================================
    # CUSTOMER
    # =========================================================================
    customer_name = Column(String(100), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    total_amount = Column(Float, nullable=False, default=0.0)

    # =========================================================================
    # RELATIONS
    # =========================================================================
    restaurant_id = Column(
        Integer,
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    table_id = Column(
        Integer,
        ForeignKey("tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    restaurant = relationship("Restaurant", lazy="selectin")
    table = relationship("Table", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by=lambda: [OrderItem.batch, OrderItem.id],
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def table_number(self):
        return self.table.table_number if self.table is not None else None

    @property
    def total_batches(self) -> int:
        return max((item.batch for item in self.items), default=0)

    @property
    def is_reopened(self) -> bool:
        return (self.reopened_count or 0) > 0

    @property
    def is_complete(self) -> bool:
        """True once every item is READY or DELIVERED."""
        return bool(self.items) and all(
            item.status in (ItemStatus.READY, ItemStatus.DELIVERED) for item in self.items
        )

    def __repr__(self):
        return f"<Order {self.order_number} - {self.status.value}>"


class OrderItem(Base):
    """A line on an order; price is a snapshot of the menu price."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(
        Enum(ItemStatus),
        default=ItemStatus.PENDING,
        nullable=False,
        index=True
    )
    batch = Column(Integer, nullable=False, default=1)

    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(
        Integer,
        ForeignKey("menu_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    order = relationship("Order", back_populates="items", lazy="selectin")
    menu_item = relationship("MenuItem", lazy="selectin")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    @property
    def line_total(self) -> float:
        return round(self.price * self.quantity, 2)

    def __repr__(self):
        return f"<OrderItem #{self.id} x{self.quantity} - {self.status.value} (batch {self.batch})>"
