"""Restaurant schemas - owners, restaurants, menu items and reference data."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

# Primary keys come back from the store as either integers or strings
RowId = int | str

# A stored image reference: a URL, a storage key, or an upload object
ImageRef = str | dict[str, Any] | None


class Owner(BaseModel):
    """Restaurant owner profile, keyed by the auth user id."""

    id: str
    contact_name: str | None = None
    phone_number: str | None = None


class Restaurant(BaseModel):
    """A restaurant registered by an owner (one per owner by convention)."""

    id: RowId
    name: str | None = None
    address_street: str | None = None
    address_barangay: str | None = None
    category_id: RowId | None = None
    image_url: str | None = None
    is_open: bool = True
    owner_id: str


class FoodItem(BaseModel):
    """A menu item sold by a restaurant."""

    food_item_id: str
    name: str
    price: Decimal
    stock: int = Field(default=0, ge=0)
    description: str | None = None
    image_url: ImageRef = None
    restaurant_id: RowId


class DeliveryZone(BaseModel):
    """Barangay that deliveries can be made to."""

    barangay_name: str


class Category(BaseModel):
    """Restaurant category."""

    id: RowId
    name: str
