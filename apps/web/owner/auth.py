"""
Owner authentication - login, and registration of an owner with their restaurant.

Registration writes three things in sequence with no transaction:
1. The auth account (metadata marks it as a restaurant owner)
2. The owner profile row
3. The restaurant row (retried on transient failure)

and then reads the restaurant back to confirm it is visible. A failed
later step leaves earlier writes in place.
"""

import asyncio
import logging
from enum import Enum

from pydantic import BaseModel, Field

from delivery_schemas import (
    AuthUser,
    Category,
    DeliveryZone,
    OwnerRegistrationForm,
    Restaurant,
)

from apps.web.core.lifecycle import Sleep
from apps.web.store.base import StoreClient
from apps.web.store.exceptions import RegistrationError, StoreError, ValidationError

logger = logging.getLogger(__name__)

OWNER_USER_TYPE = "restaurant_owner"

# Wait after sign-in before the dashboard starts reading
LOGIN_SETTLE_SECONDS = 0.5

# Restaurant insert retry configuration
RESTAURANT_INSERT_ATTEMPTS = 3
RESTAURANT_INSERT_BACKOFF_SECONDS = 1.0

# Wait before reading the new restaurant back
VERIFY_DELAY_SECONDS = 1.5


class RegistrationStatus(str, Enum):
    """How a registration attempt ended."""

    REGISTERED = "registered"
    CONFIRMATION_PENDING = "confirmation_pending"


class RegistrationResult(BaseModel):
    """Outcome of ``register``."""

    status: RegistrationStatus
    user: AuthUser | None = None
    restaurant: Restaurant | None = None

    @property
    def message(self) -> str:
        if self.status == RegistrationStatus.CONFIRMATION_PENDING:
            return "Account created! Please check your email to confirm before logging in."
        name = (self.restaurant.name or "") if self.restaurant else ""
        return f'Success! Restaurant "{name}" registered.'


class ReferenceData(BaseModel):
    """Choices for the registration and profile forms."""

    barangays: list[DeliveryZone] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)


def validate_credentials(email: str, password: str) -> None:
    if not email or not password:
        raise ValidationError(
            "Please fill in both email and password.",
            fields=[name for name, value in (("email", email), ("password", password)) if not value],
        )


def validate_registration(form: OwnerRegistrationForm) -> None:
    """
    Check required registration fields before any network call.

    Raises:
        ValidationError: Naming every missing field.
    """
    validate_credentials(form.email, form.password)

    required = {
        "owner_name": form.owner_name,
        "restaurant_name": form.restaurant_name,
        "address_barangay": form.address_barangay,
        "category_id": form.category_id,
    }
    missing = [name for name, value in required.items() if value in (None, "")]
    if missing:
        raise ValidationError(
            "Your Name, Restaurant Name, Barangay, and Category are required for registration.",
            fields=missing,
        )


async def login(
    store: StoreClient,
    email: str,
    password: str,
    sleep: Sleep = asyncio.sleep,
) -> AuthUser:
    """
    Sign an owner in.

    Raises:
        ValidationError: If email or password is blank.
        AuthError: If the credentials are rejected.
    """
    validate_credentials(email, password)
    session = await store.sign_in(email, password)
    await sleep(LOGIN_SETTLE_SECONDS)
    logger.info("Owner %s signed in", session.user.id)
    return session.user


async def _insert_restaurant(
    store: StoreClient, row: dict[str, object], sleep: Sleep
) -> None:
    for attempt in range(RESTAURANT_INSERT_ATTEMPTS):
        try:
            await store.insert("restaurants", row)
            return
        except StoreError as e:
            if attempt == RESTAURANT_INSERT_ATTEMPTS - 1:
                raise RegistrationError(
                    f"Failed to register restaurant: {e.message}",
                    step="restaurant",
                ) from e
            logger.warning(
                "Restaurant insert failed (attempt %d/%d), retry in %.1fs: %s",
                attempt + 1,
                RESTAURANT_INSERT_ATTEMPTS,
                RESTAURANT_INSERT_BACKOFF_SECONDS,
                e.message,
            )
            await sleep(RESTAURANT_INSERT_BACKOFF_SECONDS)


async def register(
    store: StoreClient,
    form: OwnerRegistrationForm,
    sleep: Sleep = asyncio.sleep,
) -> RegistrationResult:
    """
    Create an owner account, owner profile and restaurant.

    Args:
        store: Store client.
        form: Registration form as submitted.
        sleep: Delay function, injectable for tests.

    Returns:
        REGISTERED with the verified restaurant, or CONFIRMATION_PENDING when
        the account needs e-mail confirmation before anything else is written.

    Raises:
        ValidationError: If required fields are missing.
        AuthError: If sign-up is rejected.
        RegistrationError: If a profile write or the read-back fails.
    """
    validate_registration(form)

    signup = await store.sign_up(
        form.email,
        form.password,
        metadata={"user_type": OWNER_USER_TYPE},
    )
    user = signup.user

    if signup.session is None or user is None:
        logger.info("Owner account %s awaiting e-mail confirmation", form.email)
        return RegistrationResult(status=RegistrationStatus.CONFIRMATION_PENDING, user=user)

    try:
        await store.insert(
            "owners",
            {
                "id": user.id,
                "contact_name": form.owner_name,
                "phone_number": form.phone_number or None,
            },
        )
    except StoreError as e:
        raise RegistrationError(
            f"Failed to create owner profile: {e.message}", step="owner"
        ) from e

    await _insert_restaurant(
        store,
        {
            "name": form.restaurant_name,
            "address_street": form.address_street,
            "address_barangay": form.address_barangay,
            "category_id": form.category_id,
            "image_url": form.restaurant_image_url or None,
            "owner_id": user.id,
            "is_open": True,
        },
        sleep,
    )

    await sleep(VERIFY_DELAY_SECONDS)
    try:
        row = await store.select_one("restaurants", eq={"owner_id": user.id})
    except StoreError as e:
        logger.error("Restaurant read-back failed for owner %s: %s", user.id, e)
        raise RegistrationError(
            "Restaurant was created but could not be verified. Please try logging in again.",
            step="verify",
        ) from e

    restaurant = Restaurant.model_validate(row)
    logger.info("Registered restaurant %s for owner %s", restaurant.id, user.id)
    return RegistrationResult(
        status=RegistrationStatus.REGISTERED,
        user=user,
        restaurant=restaurant,
    )


async def load_reference_data(store: StoreClient) -> ReferenceData:
    """Barangays and categories for the owner forms; empty on failure."""
    data = ReferenceData()

    try:
        rows = await store.select_many("delivery_zones", columns="barangay_name")
        data.barangays = [DeliveryZone.model_validate(row) for row in rows]
    except StoreError as e:
        logger.warning("Could not load delivery zones: %s", e)

    try:
        rows = await store.select_many("categories", columns="id,name")
        data.categories = [Category.model_validate(row) for row in rows]
    except StoreError as e:
        logger.warning("Could not load categories: %s", e)

    return data
