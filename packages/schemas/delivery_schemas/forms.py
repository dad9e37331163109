"""Form payloads submitted by the owner screens."""

from pydantic import BaseModel

from delivery_schemas.restaurants import RowId


class OwnerRegistrationForm(BaseModel):
    """Owner sign-up plus the restaurant to create with it."""

    email: str = ""
    password: str = ""
    owner_name: str = ""
    phone_number: str = ""
    restaurant_name: str = ""
    address_street: str = ""
    address_barangay: str = ""
    category_id: RowId | None = None
    restaurant_image_url: str = ""


class OwnerProfileForm(BaseModel):
    """Editable owner details."""

    contact_name: str = ""
    phone_number: str = ""


class RestaurantProfileForm(BaseModel):
    """Editable restaurant details."""

    name: str = ""
    address_street: str = ""
    address_barangay: str = ""
    category_id: RowId | None = None
    image_url: str = ""
    is_open: bool = True


class ProductForm(BaseModel):
    """Product editor fields, kept as entered until saved."""

    name: str = ""
    price: str = ""
    stock: str = ""
    description: str = ""
    image_url: str = ""
