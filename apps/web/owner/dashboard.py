"""
Restaurant owner dashboard - the owner-facing screen controller.

Tracks the signed-in owner, provisions their restaurant, and once it is
found loads the order queue and product catalog together. Everything the
screen shows is read from the attributes of ``OwnerDashboard``.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from delivery_schemas import (
    AuthEvent,
    AuthSession,
    AuthUser,
    FoodItem,
    Owner,
    OwnerProfileForm,
    OwnerRegistrationForm,
    ProductForm,
    Restaurant,
    RestaurantProfileForm,
)

from apps.web.core.lifecycle import Sleep, ViewScope
from apps.web.core.preferences import PreferenceStore, StatusFilterPreference
from apps.web.owner.auth import (
    ReferenceData,
    RegistrationResult,
    load_reference_data,
    login,
    register,
)
from apps.web.owner.catalog import ProductCatalog
from apps.web.owner.orders import OrderQueue
from apps.web.owner.profile import update_profile
from apps.web.owner.provisioning import RestaurantProvisioner
from apps.web.store.base import AuthSubscription, StoreClient
from apps.web.store.exceptions import (
    RegistrationError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class DashboardView(str, Enum):
    """Which screen the dashboard should render."""

    LOADING = "loading"
    AUTH = "auth"
    RECOVERY = "recovery"
    READY = "ready"


class OwnerDashboard:
    """
    Controller for the restaurant owner dashboard.

    Usage:
        dashboard = OwnerDashboard(store, preferences=PreferenceStore(path))
        await dashboard.mount()
        ...
        dashboard.teardown()
    """

    def __init__(
        self,
        store: StoreClient,
        preferences: PreferenceStore | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._sleep = sleep
        self._scope = ViewScope("owner-dashboard")
        self._identity_scope = ViewScope("owner-identity")
        self._subscription: AuthSubscription | None = None

        self.user: AuthUser | None = None
        self.auth_ready = False
        self.owner: Owner | None = None
        self.restaurant: Restaurant | None = None
        self.reference = ReferenceData()
        self.catalog: ProductCatalog | None = None
        self.saving_profile = False
        self.error: str | None = None
        self.auth_error: str | None = None
        self.auth_message: str | None = None

        self.provisioner = RestaurantProvisioner(
            store, on_found=self._on_restaurant_found, sleep=sleep
        )
        status_filter = StatusFilterPreference(preferences) if preferences else None
        self.orders = OrderQueue(store, status_filter)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def mount(self) -> None:
        """Subscribe to auth changes, read the current session and form choices."""
        scope = self._scope
        self._subscription = self._store.on_auth_state_change(self._handle_auth_change)

        try:
            session = await self._store.get_session()
        except StoreError as e:
            logger.error("Could not read session: %s", e)
            session = None
        if not scope.alive:
            return

        if session is not None and (self.user is None or self.user.id != session.user.id):
            self._set_user(session.user)
        self.auth_ready = True

        reference = await scope.run(load_reference_data(self._store))
        if reference is not None:
            self.reference = reference

    def teardown(self) -> None:
        """Stop every timer and in-flight read; later results are ignored."""
        self._scope.close()
        self._identity_scope.close()
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.provisioner.cancel()
        self.orders.teardown()

    @property
    def view(self) -> DashboardView:
        if not self.auth_ready:
            return DashboardView.LOADING
        if self.user is None:
            return DashboardView.AUTH
        if self.provisioner.needs_recovery:
            return DashboardView.RECOVERY
        if self.restaurant is None:
            return DashboardView.LOADING
        return DashboardView.READY

    # =========================================================================
    # Identity
    # =========================================================================

    def _handle_auth_change(self, event: AuthEvent, session: AuthSession | None) -> None:
        if not self._scope.alive:
            return
        self.auth_ready = True
        user = session.user if session else None
        same_user = user is not None and self.user is not None and user.id == self.user.id
        if same_user and event != AuthEvent.SIGNED_IN:
            self.user = user
            return
        self._set_user(user)

    def _set_user(self, user: AuthUser | None) -> None:
        # Work started for the previous identity must not land in this one
        self._identity_scope.close()
        self._identity_scope = ViewScope(f"owner-identity:{user.id if user else None}")
        self.user = user
        self.owner = None
        self.restaurant = None
        self.catalog = None
        self.saving_profile = False
        self.orders.reset()
        if user is None:
            self.provisioner.reset()
        else:
            self.provisioner.start(user.id)

    async def _on_restaurant_found(self, restaurant: Restaurant) -> None:
        self.owner = self.provisioner.owner
        self.restaurant = restaurant
        self.catalog = ProductCatalog(self._store, restaurant.id)
        await asyncio.gather(self.orders.load(restaurant.id), self.catalog.load())

    async def login(self, email: str, password: str) -> bool:
        self.auth_error = None
        try:
            await login(self._store, email, password, sleep=self._sleep)
        except (ValidationError, StoreError) as e:
            logger.error("Owner login failed: %s", e)
            self.auth_error = str(e) or "Authentication failed. Please try again."
            return False
        return True

    async def register(self, form: OwnerRegistrationForm) -> RegistrationResult | None:
        self.auth_error = None
        self.auth_message = None
        try:
            result = await register(self._store, form, sleep=self._sleep)
        except (ValidationError, StoreError, RegistrationError) as e:
            logger.error("Owner registration failed: %s", e)
            self.auth_error = str(e) or "Authentication failed. Please try again."
            return None
        self.auth_message = result.message
        return result

    async def sign_out(self) -> None:
        try:
            await self._store.sign_out()
        except StoreError as e:
            logger.error("Sign-out failed, clearing local session anyway: %s", e)
        self._set_user(None)

    # =========================================================================
    # Orders
    # =========================================================================

    def set_status_filter(self, value: str) -> None:
        self.orders.set_status_filter(value)

    async def reload_orders(self) -> None:
        if self.restaurant is not None:
            await self.orders.load(self.restaurant.id)

    async def advance_order(self, order_id: str) -> bool:
        try:
            return await self.orders.advance(order_id)
        except ValidationError as e:
            self.error = e.message
            return False

    async def cancel_order(self, order_id: str) -> bool:
        try:
            return await self.orders.cancel(order_id)
        except ValidationError as e:
            self.error = e.message
            return False

    # =========================================================================
    # Products
    # =========================================================================

    async def save_product(self, form: ProductForm, editing: FoodItem | None = None) -> bool:
        if self.catalog is None:
            return False
        try:
            saved = await self.catalog.save(form, editing)
        except ValidationError as e:
            self.error = e.message
            return False
        return saved is not None

    async def delete_product(self, food_item_id: str, confirm: Callable[[], bool]) -> bool:
        if self.catalog is None:
            return False
        return await self.catalog.delete(food_item_id, confirm)

    # =========================================================================
    # Profile
    # =========================================================================

    async def update_profile(
        self, owner_form: OwnerProfileForm, restaurant_form: RestaurantProfileForm
    ) -> bool:
        if self.user is None:
            return False

        scope = self._identity_scope
        self.saving_profile = True
        try:
            owner, restaurant = await update_profile(
                self._store, self.user.id, owner_form, restaurant_form
            )
        except ValidationError as e:
            self.error = e.message
            return False
        except StoreError as e:
            logger.error("Error updating profile: %s", e)
            if scope.alive:
                self.error = f"Failed to update profile: {e.message}"
            return False
        finally:
            if scope.alive:
                self.saving_profile = False

        if scope.alive:
            self.owner = owner
            self.restaurant = restaurant
            self.error = None
        return True

    def dismiss_error(self) -> None:
        self.error = None
