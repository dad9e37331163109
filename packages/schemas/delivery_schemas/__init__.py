"""Delivery Schemas - Pydantic models for data contracts."""

from delivery_schemas.auth import AuthEvent, AuthSession, AuthUser, SignUpResult
from delivery_schemas.forms import (
    OwnerProfileForm,
    OwnerRegistrationForm,
    ProductForm,
    RestaurantProfileForm,
)
from delivery_schemas.orders import (
    CANCELLABLE_STATUSES,
    NEXT_STATUS,
    ORDER_STATUSES,
    TERMINAL_STATUSES,
    HistoryItem,
    Order,
    OrderItem,
    OrderSegment,
    OrderStatus,
    QueuedOrder,
    UnresolvedItem,
    next_status,
)
from delivery_schemas.restaurants import (
    Category,
    DeliveryZone,
    FoodItem,
    ImageRef,
    Owner,
    Restaurant,
    RowId,
)

__all__ = [
    # Auth
    "AuthEvent",
    "AuthSession",
    "AuthUser",
    "SignUpResult",
    # Forms
    "OwnerProfileForm",
    "OwnerRegistrationForm",
    "ProductForm",
    "RestaurantProfileForm",
    # Orders
    "CANCELLABLE_STATUSES",
    "NEXT_STATUS",
    "ORDER_STATUSES",
    "TERMINAL_STATUSES",
    "HistoryItem",
    "Order",
    "OrderItem",
    "OrderSegment",
    "OrderStatus",
    "QueuedOrder",
    "UnresolvedItem",
    "next_status",
    # Restaurants
    "Category",
    "DeliveryZone",
    "FoodItem",
    "ImageRef",
    "Owner",
    "Restaurant",
    "RowId",
]
