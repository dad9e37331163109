"""Order schemas - orders, line items and per-restaurant display segments."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from delivery_schemas.restaurants import FoodItem, ImageRef, Restaurant, RowId

# =============================================================================
# Status
# =============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle status, in the order an order moves through them."""

    PENDING = "Pending"
    PREPARING = "Preparing"
    DRIVER_ASSIGNED = "Driver Assigned"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


ORDER_STATUSES: list[OrderStatus] = list(OrderStatus)

NEXT_STATUS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.DRIVER_ASSIGNED,
    OrderStatus.DRIVER_ASSIGNED: OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
    OrderStatus.DELIVERED: OrderStatus.COMPLETED,
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PREPARING})


def next_status(current: OrderStatus) -> OrderStatus | None:
    """Status an order advances to from ``current``, or None at the end."""
    return NEXT_STATUS.get(current)


# =============================================================================
# Stored rows
# =============================================================================


class Order(BaseModel):
    """Order header as stored."""

    id: str
    user_id: str
    customer_name: str | None = None
    contact_number: str | None = None
    shipping_address: str | None = None
    barangay: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime


class OrderItem(BaseModel):
    """Order line; name, price and quantity are snapshotted at order time."""

    id: RowId | None = None
    order_id: str
    food_item_id: str | None = None
    name: str
    price: Decimal
    quantity: int = 1
    image_url: ImageRef = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


# =============================================================================
# Derived views
# =============================================================================


class QueuedOrder(BaseModel):
    """An order in a restaurant's queue, carrying only that restaurant's lines."""

    order: Order
    items: list[OrderItem] = Field(default_factory=list)
    restaurant_subtotal: Decimal = Decimal("0.00")

    @property
    def id(self) -> str:
        return self.order.id

    @property
    def status(self) -> OrderStatus:
        return self.order.status


class HistoryItem(BaseModel):
    """Order line joined with its food item and restaurant, image resolved."""

    item: OrderItem
    food_item: FoodItem | None = None
    restaurant: Restaurant | None = None
    image_url: str | None = None

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def quantity(self) -> int:
        return self.item.quantity

    @property
    def line_total(self) -> Decimal:
        return self.item.line_total


class OrderSegment(BaseModel):
    """
    One order's items sold by a single restaurant.

    Derived for display only; recomputed on every fetch, never persisted.
    """

    display_id: str = Field(description="Synthetic key: {order_id}-{restaurant_id}")
    order: Order
    restaurant_id: RowId | None = None
    restaurant_name: str
    items: list[HistoryItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    created_on: str = Field(description="Short date, e.g. 'Oct 16, 2026'")

    @property
    def status(self) -> OrderStatus:
        return self.order.status


class UnresolvedItem(BaseModel):
    """A history line whose selling restaurant could not be determined."""

    order_id: str
    item: OrderItem
    reason: str
