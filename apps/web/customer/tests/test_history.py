"""Tests for customer order history segmentation."""

import asyncio
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from delivery_schemas import AuthUser, HistoryItem, Order, OrderItem, Restaurant

from apps.web.customer.history import (
    HistoryState,
    OrderHistory,
    format_order_date,
    segment_order,
)
from apps.web.owner.tests.factories import (
    FoodItemRowFactory,
    OrderItemRowFactory,
    OrderRowFactory,
    RestaurantRowFactory,
)
from apps.web.store.exceptions import StoreError
from apps.web.store.mock import MockStore

CUSTOMER = AuthUser(id="customer-1", email="juan@example.com")


@pytest.fixture
def two_restaurant_order(store):
    """One order with two lines from restaurant A and one from restaurant B."""
    store.seed(
        "restaurants",
        [
            RestaurantRowFactory(id=1, name="Restaurant A", image_url=None),
            RestaurantRowFactory(id=2, name="Restaurant B"),
        ],
    )
    store.seed(
        "food_items",
        [
            FoodItemRowFactory(restaurant_id=1, food_item_id="1_1", price=100.0, image_url="a1.png"),
            FoodItemRowFactory(restaurant_id=1, food_item_id="1_2", price=50.0),
            FoodItemRowFactory(restaurant_id=2, food_item_id="2_1", price=75.0),
        ],
    )
    store.seed(
        "orders",
        [OrderRowFactory(id="order-1", user_id="customer-1",
                         created_at="2026-10-16T09:30:00+00:00")],
    )
    store.seed(
        "order_items",
        [
            OrderItemRowFactory(order_id="order-1", food_item_id="1_1", name="Sisig", price=100.0, quantity=1),
            OrderItemRowFactory(order_id="order-1", food_item_id="1_2", name="Rice", price=50.0, quantity=2),
            OrderItemRowFactory(order_id="order-1", food_item_id="2_1", name="Halo-Halo", price=75.0, quantity=1),
        ],
    )
    return store


class TestSegmentOrder:
    """Tests for splitting one order into restaurant segments."""

    def _order(self) -> Order:
        return Order(id="o1", user_id="u", created_at=datetime(2026, 10, 16, 12, 0).astimezone())

    def _entry(self, name: str, price: str, quantity: int, restaurant: Restaurant | None) -> HistoryItem:
        item = OrderItem(order_id="o1", name=name, price=Decimal(price), quantity=quantity)
        return HistoryItem(item=item, restaurant=restaurant)

    def test_groups_in_first_seen_order(self):
        """Test that segments follow the order restaurants first appear."""
        a = Restaurant(id=1, name="A", address_barangay="Tibanga", owner_id="x")
        b = Restaurant(id=2, name="B", address_barangay="Tibanga", owner_id="y")

        segments, unresolved = segment_order(
            self._order(),
            [
                self._entry("b1", "10", 1, b),
                self._entry("a1", "20", 1, a),
                self._entry("b2", "5.555", 2, b),
            ],
        )

        assert [s.restaurant_name for s in segments] == ["B", "A"]
        assert [s.display_id for s in segments] == ["o1-2", "o1-1"]
        assert segments[0].subtotal == Decimal("21.11")
        assert segments[0].created_on == "Oct 16, 2026"
        assert unresolved == []

    def test_order_without_placeable_lines(self):
        """Test that lines with no restaurant produce no segment."""
        segments, unresolved = segment_order(self._order(), [self._entry("x", "10", 1, None)])

        assert segments == []
        assert [u.reason for u in unresolved] == ["unknown food item"]


def test_format_order_date():
    assert format_order_date(datetime(2026, 1, 5, tzinfo=UTC), tz=UTC) == "Jan 5, 2026"


def test_format_order_date_uses_local_day():
    """Test that a late-evening UTC timestamp shows the local calendar day."""
    manila = timezone(timedelta(hours=8))

    assert format_order_date(datetime(2026, 10, 16, 23, 30, tzinfo=UTC), tz=manila) == "Oct 17, 2026"


class TestOrderHistory:
    """Tests for the OrderHistory controller."""

    @pytest.mark.asyncio
    async def test_segments_per_restaurant(self, two_restaurant_order):
        """Test that one order with two restaurants yields two subtotals."""
        history = OrderHistory(two_restaurant_order)

        await history.set_user(CUSTOMER)

        assert history.state == HistoryState.READY
        assert [(s.restaurant_name, s.subtotal) for s in history.segments] == [
            ("Restaurant A", Decimal("200.00")),
            ("Restaurant B", Decimal("75.00")),
        ]
        assert [s.display_id for s in history.segments] == ["order-1-1", "order-1-2"]
        assert history.unresolved_items == []

    @pytest.mark.asyncio
    async def test_images_resolved_before_display(self, two_restaurant_order):
        """Test that every line carries its resolved image before render."""
        history = OrderHistory(two_restaurant_order)

        await history.set_user(CUSTOMER)

        first = history.segments[0].items[0]
        assert first.image_url == "https://mock.storage.local/object/public/food-images/a1.png"
        assert history.segments[1].items[0].image_url is None

    @pytest.mark.asyncio
    async def test_unknown_food_item_goes_to_unresolved(self, two_restaurant_order):
        """Test that lines without a known restaurant are kept aside."""
        two_restaurant_order.seed(
            "order_items",
            [OrderItemRowFactory(order_id="order-1", food_item_id="gone", name="Deleted dish")],
        )
        history = OrderHistory(two_restaurant_order)

        await history.set_user(CUSTOMER)

        assert len(history.segments) == 2
        assert [(u.item.name, u.reason) for u in history.unresolved_items] == [
            ("Deleted dish", "unknown food item")
        ]

    @pytest.mark.asyncio
    async def test_no_orders_is_empty(self, store):
        """Test the empty state."""
        history = OrderHistory(store)

        await history.set_user(CUSTOMER)

        assert history.state == HistoryState.EMPTY
        assert store.calls_for("order_items") == []

    @pytest.mark.asyncio
    async def test_signed_out_is_empty(self, store):
        """Test that no user means nothing is fetched."""
        history = OrderHistory(store)

        await history.set_user(None)

        assert history.state == HistoryState.EMPTY
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_fetch_failure(self, two_restaurant_order):
        """Test that a failed read shows the error state."""
        two_restaurant_order.fail_next("select_many", "order_items", StoreError("timeout"))
        history = OrderHistory(two_restaurant_order)

        await history.set_user(CUSTOMER)

        assert history.state == HistoryState.ERROR
        assert "timeout" in history.error
        assert history.segments == []

        await history.refresh()
        assert history.state == HistoryState.READY

    @pytest.mark.asyncio
    async def test_fetches_once_per_identity(self, two_restaurant_order):
        """Test that re-setting the same user does not refetch."""
        history = OrderHistory(two_restaurant_order)

        await history.set_user(CUSTOMER)
        await history.set_user(AuthUser(id="customer-1"))

        assert len(two_restaurant_order.calls_for("orders")) == 1

    @pytest.mark.asyncio
    async def test_results_after_teardown_are_dropped(self, two_restaurant_order):
        """Test that a fetch finishing after teardown changes nothing."""
        store = MockStore(tables=two_restaurant_order.tables, api_delay_ms=20)
        history = OrderHistory(store)

        pending = asyncio.create_task(history.set_user(CUSTOMER))
        await asyncio.sleep(0.005)
        history.teardown()
        await pending

        assert history.segments == []
        assert history.state != HistoryState.READY

    @pytest.mark.asyncio
    async def test_null_columns_still_render(self, two_restaurant_order):
        """Test that empty nullable columns do not break the history."""
        two_restaurant_order.tables["orders"][0].update(contact_number=None, barangay=None)
        two_restaurant_order.tables["restaurants"][1]["address_barangay"] = None

        history = OrderHistory(two_restaurant_order)
        await history.set_user(CUSTOMER)

        assert history.state == HistoryState.READY
        assert len(history.segments) == 2
        assert history.segments[0].order.contact_number is None

    @pytest.mark.asyncio
    async def test_all_lines_unresolved_is_empty(self, store):
        """Test that orders whose lines all lack a restaurant show the empty state."""
        store.seed("orders", [OrderRowFactory(id="order-x", user_id="customer-1")])
        store.seed("order_items", [OrderItemRowFactory(order_id="order-x", food_item_id="gone")])
        history = OrderHistory(store)

        await history.set_user(CUSTOMER)

        assert history.state == HistoryState.EMPTY
        assert history.segments == []
        assert len(history.unresolved_items) == 1

    @pytest.mark.asyncio
    async def test_orders_newest_first_and_every_line_accounted_for(self, two_restaurant_order):
        """Test ordering across orders and that lines are never lost or duplicated."""
        store = two_restaurant_order
        store.seed(
            "orders",
            [OrderRowFactory(id="order-2", user_id="customer-1",
                             created_at="2026-10-17T09:30:00+00:00")],
        )
        store.seed(
            "order_items",
            [
                OrderItemRowFactory(order_id="order-2", food_item_id="2_1", price=75.0, quantity=3),
                OrderItemRowFactory(order_id="order-2", food_item_id="gone"),
            ],
        )
        history = OrderHistory(store)

        await history.set_user(CUSTOMER)

        assert [s.display_id for s in history.segments] == ["order-2-2", "order-1-1", "order-1-2"]
        assert history.segments[0].subtotal == Decimal("225.00")
        for order_id in ("order-1", "order-2"):
            placed = sum(len(s.items) for s in history.segments if s.order.id == order_id)
            aside = sum(1 for u in history.unresolved_items if u.order_id == order_id)
            lines = [row for row in store.tables["order_items"] if row["order_id"] == order_id]
            assert placed + aside == len(lines)

    @pytest.mark.asyncio
    async def test_teardown_is_final(self, store):
        """Test that a torn-down history neither fetches nor raises."""
        history = OrderHistory(store)
        history.teardown()

        await history.set_user(CUSTOMER)
        await history.refresh()

        assert store.calls == []
        assert history.state == HistoryState.IDLE
