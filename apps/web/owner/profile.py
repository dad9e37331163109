"""Owner profile editing - owner contact details and restaurant details."""

import logging

from delivery_schemas import (
    Owner,
    OwnerProfileForm,
    Restaurant,
    RestaurantProfileForm,
)

from apps.web.store.base import StoreClient
from apps.web.store.exceptions import ValidationError

logger = logging.getLogger(__name__)


def validate_profile(owner_form: OwnerProfileForm, restaurant_form: RestaurantProfileForm) -> None:
    required = {
        "contact_name": owner_form.contact_name,
        "name": restaurant_form.name,
        "address_barangay": restaurant_form.address_barangay,
        "category_id": restaurant_form.category_id,
    }
    missing = [name for name, value in required.items() if value in (None, "")]
    if missing:
        raise ValidationError(
            "Owner Name, Restaurant Name, Barangay, and Category are required.",
            fields=missing,
        )


async def update_profile(
    store: StoreClient,
    owner_id: str,
    owner_form: OwnerProfileForm,
    restaurant_form: RestaurantProfileForm,
) -> tuple[Owner, Restaurant]:
    """
    Save both profile forms and return the rows as now stored.

    The owner row is written first; if the restaurant write then fails the
    owner change stays in place.

    Raises:
        ValidationError: If required fields are missing; nothing is sent.
        StoreError: If a write or the re-read fails.
    """
    validate_profile(owner_form, restaurant_form)

    await store.update(
        "owners",
        {
            "contact_name": owner_form.contact_name,
            "phone_number": owner_form.phone_number or None,
        },
        eq={"id": owner_id},
    )
    await store.update(
        "restaurants",
        {
            "name": restaurant_form.name,
            "address_street": restaurant_form.address_street or None,
            "address_barangay": restaurant_form.address_barangay,
            "category_id": restaurant_form.category_id,
            "image_url": restaurant_form.image_url or None,
            "is_open": restaurant_form.is_open,
        },
        eq={"owner_id": owner_id},
    )

    owner = Owner.model_validate(await store.select_one("owners", eq={"id": owner_id}))
    restaurant = Restaurant.model_validate(
        await store.select_one("restaurants", eq={"owner_id": owner_id})
    )
    logger.info("Profile updated for owner %s", owner_id)
    return owner, restaurant


def profile_forms(owner: Owner, restaurant: Restaurant) -> tuple[OwnerProfileForm, RestaurantProfileForm]:
    """Editor fields pre-filled from the stored rows."""
    return (
        OwnerProfileForm(
            contact_name=owner.contact_name or "",
            phone_number=owner.phone_number or "",
        ),
        RestaurantProfileForm(
            name=restaurant.name or "",
            address_street=restaurant.address_street or "",
            address_barangay=restaurant.address_barangay or "",
            category_id=restaurant.category_id,
            image_url=restaurant.image_url or "",
            is_open=restaurant.is_open,
        ),
    )
