"""Tests for the owner dashboard controller."""

import asyncio

import pytest

from delivery_schemas import OrderStatus, OwnerProfileForm, ProductForm, RestaurantProfileForm

from apps.web.core.preferences import PreferenceStore
from apps.web.owner.dashboard import DashboardView, OwnerDashboard
from apps.web.owner.provisioning import ProvisioningState
from apps.web.store.mock import MockStore
from apps.web.owner.tests.factories import (
    FoodItemRowFactory,
    OrderItemRowFactory,
    OrderRowFactory,
    OwnerRowFactory,
    RestaurantRowFactory,
)


@pytest.fixture
def owner_account(store):
    """An owner who can sign in, with a restaurant, a product and an order."""
    store.add_account("owner@example.com", "pw", user_id="owner-1")
    store.seed("owners", [OwnerRowFactory(id="owner-1", contact_name="Maria Santos")])
    store.seed("restaurants", [RestaurantRowFactory(id=42, name="Maria's Kitchen", owner_id="owner-1")])
    food = FoodItemRowFactory(restaurant_id=42, food_item_id="42_1", name="Sinigang", price=180.0)
    order = OrderRowFactory(id="order-a", status="Pending")
    store.seed("food_items", [food])
    store.seed("orders", [order])
    store.seed(
        "order_items",
        [OrderItemRowFactory(order_id="order-a", food_item_id="42_1", name="Sinigang",
                             price=180.0, quantity=2)],
    )
    return store


async def signed_in_dashboard(store, sleep, **kwargs) -> OwnerDashboard:
    dashboard = OwnerDashboard(store, sleep=sleep, **kwargs)
    await dashboard.mount()
    assert await dashboard.login("owner@example.com", "pw")
    await dashboard.provisioner.wait()
    return dashboard


class TestMount:
    """Tests for mounting and the rendered view."""

    @pytest.mark.asyncio
    async def test_no_session_shows_auth(self, store, sleep):
        """Test that a signed-out mount renders the login screen."""
        store.seed("delivery_zones", [{"barangay_name": "Tibanga"}])
        store.seed("categories", [{"id": 1, "name": "Filipino"}])
        dashboard = OwnerDashboard(store, sleep=sleep)

        assert dashboard.view == DashboardView.LOADING
        await dashboard.mount()

        assert dashboard.view == DashboardView.AUTH
        assert [z.barangay_name for z in dashboard.reference.barangays] == ["Tibanga"]
        assert [c.name for c in dashboard.reference.categories] == ["Filipino"]

    @pytest.mark.asyncio
    async def test_existing_session_provisions(self, owner_account, sleep):
        """Test that a restored session goes straight to the restaurant."""
        await owner_account.sign_in("owner@example.com", "pw")
        dashboard = OwnerDashboard(owner_account, sleep=sleep)

        await dashboard.mount()
        await dashboard.provisioner.wait()

        assert dashboard.view == DashboardView.READY
        assert dashboard.restaurant.id == 42


class TestSignIn:
    """Tests for sign-in and identity changes."""

    @pytest.mark.asyncio
    async def test_login_loads_orders_and_products(self, owner_account, sleep):
        """Test that finding the restaurant loads both tabs."""
        dashboard = await signed_in_dashboard(owner_account, sleep)

        assert dashboard.view == DashboardView.READY
        assert dashboard.owner.contact_name == "Maria Santos"
        assert [o.id for o in dashboard.orders.orders] == ["order-a"]
        assert str(dashboard.orders.orders[0].restaurant_subtotal) == "360.00"
        assert [p.name for p in dashboard.catalog.products] == ["Sinigang"]

    @pytest.mark.asyncio
    async def test_login_failure_sets_auth_error(self, store, sleep):
        """Test that rejected credentials are shown on the auth screen."""
        dashboard = OwnerDashboard(store, sleep=sleep)
        await dashboard.mount()

        assert await dashboard.login("nobody@example.com", "pw") is False

        assert "Invalid login credentials" in dashboard.auth_error
        assert dashboard.view == DashboardView.AUTH

    @pytest.mark.asyncio
    async def test_owner_without_restaurant_sees_recovery(self, store, sleep):
        """Test that exhausted retries render the recovery screen."""
        store.add_account("owner@example.com", "pw", user_id="owner-1")

        dashboard = await signed_in_dashboard(store, sleep)

        assert dashboard.provisioner.state == ProvisioningState.NOT_FOUND_FINAL
        assert dashboard.view == DashboardView.RECOVERY

    @pytest.mark.asyncio
    async def test_switching_identity_restarts_provisioning(self, owner_account, sleep):
        """Test that a new user starts a fresh lookup with zero attempts."""
        owner_account.add_account("other@example.com", "pw", user_id="owner-2")
        dashboard = OwnerDashboard(owner_account, sleep=sleep)
        await dashboard.mount()
        await dashboard.login("other@example.com", "pw")
        await dashboard.provisioner.wait()
        assert dashboard.view == DashboardView.RECOVERY

        await dashboard.login("owner@example.com", "pw")
        await dashboard.provisioner.wait()

        assert dashboard.view == DashboardView.READY
        assert dashboard.provisioner.attempts == 0
        assert dashboard.user.id == "owner-1"

    @pytest.mark.asyncio
    async def test_sign_out_clears_state(self, owner_account, sleep):
        """Test that signing out returns to the auth screen with nothing cached."""
        dashboard = await signed_in_dashboard(owner_account, sleep)

        await dashboard.sign_out()

        assert dashboard.view == DashboardView.AUTH
        assert dashboard.restaurant is None
        assert dashboard.orders.orders == []
        assert dashboard.provisioner.state == ProvisioningState.IDLE


class TestTeardown:
    """Tests for teardown."""

    @pytest.mark.asyncio
    async def test_teardown_cancels_pending_retry(self, store):
        """Test that a retry timer pending at teardown never fires."""
        never = asyncio.Event()

        async def blocking_sleep(seconds):
            await never.wait()

        store.add_account("owner@example.com", "pw", user_id="owner-1")
        dashboard = OwnerDashboard(store, sleep=blocking_sleep)
        await dashboard.mount()
        await store.sign_in("owner@example.com", "pw")
        for _ in range(3):
            await asyncio.sleep(0)
        assert dashboard.provisioner.state == ProvisioningState.NOT_FOUND_RETRY

        dashboard.teardown()
        await dashboard.provisioner.wait()

        assert dashboard.provisioner.state == ProvisioningState.NOT_FOUND_RETRY
        assert len(store.calls_for("restaurants", "select_one")) == 1

    @pytest.mark.asyncio
    async def test_auth_events_ignored_after_teardown(self, owner_account, sleep):
        """Test that the auth subscription is released."""
        dashboard = OwnerDashboard(owner_account, sleep=sleep)
        await dashboard.mount()
        dashboard.teardown()

        await owner_account.sign_in("owner@example.com", "pw")

        assert dashboard.user is None


class TestActions:
    """Tests for dashboard actions once the restaurant is loaded."""

    @pytest.mark.asyncio
    async def test_advance_order(self, owner_account, sleep):
        """Test advancing an order from the dashboard."""
        dashboard = await signed_in_dashboard(owner_account, sleep)

        assert await dashboard.advance_order("order-a") is True

        assert dashboard.orders.get("order-a").status == OrderStatus.PREPARING

    @pytest.mark.asyncio
    async def test_invalid_transition_sets_error(self, owner_account, sleep):
        """Test that an unknown order is reported, not raised."""
        dashboard = await signed_in_dashboard(owner_account, sleep)

        assert await dashboard.advance_order("order-zzz") is False
        assert "order-zzz" in dashboard.error

        dashboard.dismiss_error()
        assert dashboard.error is None

    @pytest.mark.asyncio
    async def test_status_filter_survives_new_dashboard(self, owner_account, sleep, tmp_path):
        """Test that the chosen filter is restored by the next dashboard."""
        preferences = PreferenceStore(tmp_path / "preferences.json")
        dashboard = await signed_in_dashboard(owner_account, sleep, preferences=preferences)
        dashboard.set_status_filter("Preparing")
        dashboard.teardown()

        restored = OwnerDashboard(owner_account, preferences=preferences, sleep=sleep)

        assert restored.orders.status_filter == "Preparing"

    @pytest.mark.asyncio
    async def test_save_and_delete_product(self, owner_account, sleep):
        """Test the product editor round trip from the dashboard."""
        dashboard = await signed_in_dashboard(owner_account, sleep)

        assert await dashboard.save_product(ProductForm(name="Adobo", price="120", stock="8"))
        assert [p.name for p in dashboard.catalog.products] == ["Adobo", "Sinigang"]

        assert await dashboard.delete_product("42_1", confirm=lambda: False) is False
        assert await dashboard.delete_product("42_1", confirm=lambda: True) is True
        assert [p.name for p in dashboard.catalog.products] == ["Adobo"]

    @pytest.mark.asyncio
    async def test_incomplete_product_sets_error(self, owner_account, sleep):
        """Test that an incomplete product form is reported."""
        dashboard = await signed_in_dashboard(owner_account, sleep)

        assert await dashboard.save_product(ProductForm(name="Adobo")) is False
        assert "required fields" in dashboard.error

    @pytest.mark.asyncio
    async def test_update_profile(self, owner_account, sleep):
        """Test that the saved profile replaces the displayed rows."""
        dashboard = await signed_in_dashboard(owner_account, sleep)

        saved = await dashboard.update_profile(
            OwnerProfileForm(contact_name="Maria Cruz", phone_number="0917"),
            RestaurantProfileForm(name="Cruz Kitchen", address_barangay="Pala-o", category_id=1),
        )

        assert saved is True
        assert dashboard.owner.contact_name == "Maria Cruz"
        assert dashboard.restaurant.name == "Cruz Kitchen"
        assert dashboard.saving_profile is False


class TestIdentitySwitch:
    """Tests that work started for one owner never lands for the next."""

    @pytest.fixture
    def slow_store(self, owner_account):
        store = MockStore(tables=owner_account.tables, api_delay_ms=20)
        store.add_account("owner@example.com", "pw", user_id="owner-1")
        store.add_account("other@example.com", "pw", user_id="owner-2")
        return store

    @pytest.mark.asyncio
    async def test_reload_in_flight_is_discarded(self, slow_store, sleep):
        """Test that a reload finishing after the switch leaves the queue empty."""
        dashboard = await signed_in_dashboard(slow_store, sleep)
        assert [o.id for o in dashboard.orders.orders] == ["order-a"]

        reload = asyncio.create_task(dashboard.reload_orders())
        await asyncio.sleep(0)
        await dashboard.login("other@example.com", "pw")
        await reload
        await dashboard.provisioner.wait()

        assert dashboard.user.id == "owner-2"
        assert dashboard.view == DashboardView.RECOVERY
        assert dashboard.orders.orders == []
        assert dashboard.orders.loading is False

    @pytest.mark.asyncio
    async def test_profile_save_in_flight_is_discarded(self, slow_store, sleep):
        """Test that the previous owner's saved profile is not shown."""
        dashboard = await signed_in_dashboard(slow_store, sleep)

        saving = asyncio.create_task(
            dashboard.update_profile(
                OwnerProfileForm(contact_name="Maria Cruz"),
                RestaurantProfileForm(name="Cruz Kitchen", address_barangay="Pala-o", category_id=1),
            )
        )
        await asyncio.sleep(0)
        await dashboard.login("other@example.com", "pw")
        await saving
        await dashboard.provisioner.wait()

        assert dashboard.user.id == "owner-2"
        assert dashboard.owner is None
        assert dashboard.restaurant is None
        assert dashboard.saving_profile is False
