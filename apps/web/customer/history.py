"""
Customer order history - per-restaurant segments of a customer's orders.

Pipeline:
1. Read the customer's orders, their lines, the lines' food items and the
   food items' restaurants as flat rows, then join them by foreign key
2. Resolve every line's image concurrently and wait for all of them
3. Split each order into one segment per selling restaurant
"""

import asyncio
import logging
from datetime import datetime, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from delivery_schemas import (
    AuthUser,
    FoodItem,
    HistoryItem,
    Order,
    OrderItem,
    OrderSegment,
    Restaurant,
    UnresolvedItem,
)

from apps.web.core.lifecycle import ViewScope
from apps.web.customer.images import ImageResolver
from apps.web.store.base import StoreClient
from apps.web.store.exceptions import StoreError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class HistoryState(str, Enum):
    """What the history screen should show."""

    IDLE = "idle"
    LOADING = "loading"
    EMPTY = "empty"
    READY = "ready"
    ERROR = "error"


class OrderHistoryResult(BaseModel):
    """Segments to display plus the lines that could not be placed in one."""

    segments: list[OrderSegment] = Field(default_factory=list)
    unresolved_items: list[UnresolvedItem] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.segments


def format_order_date(created_at: datetime, tz: tzinfo | None = None) -> str:
    """Short date as shown on order cards, e.g. ``Oct 16, 2026``, in local time by default."""
    local = created_at.astimezone(tz)
    return f"{local:%b} {local.day}, {local.year}"


def _distinct(values: list[Any]) -> list[Any]:
    return list(dict.fromkeys(v for v in values if v is not None))


# =============================================================================
# Segmentation
# =============================================================================


def segment_order(
    order: Order, items: list[HistoryItem]
) -> tuple[list[OrderSegment], list[UnresolvedItem]]:
    """
    Split one order's lines into per-restaurant segments.

    Lines are grouped by the selling restaurant's name, in the order each
    restaurant is first seen. Lines without a known restaurant go to the
    unresolved list instead of any segment. An order with no placeable
    lines yields no segments.
    """
    groups: dict[str, list[HistoryItem]] = {}
    unresolved: list[UnresolvedItem] = []

    for entry in items:
        restaurant = entry.restaurant
        if restaurant is None or not restaurant.name:
            reason = "unknown food item" if entry.food_item is None else "unknown restaurant"
            unresolved.append(UnresolvedItem(order_id=order.id, item=entry.item, reason=reason))
            continue
        groups.setdefault(restaurant.name, []).append(entry)

    created_on = format_order_date(order.created_at)
    segments = []
    for restaurant_name, group in groups.items():
        restaurant_id = group[0].restaurant.id if group[0].restaurant else None
        subtotal = sum((entry.line_total for entry in group), Decimal("0"))
        segments.append(
            OrderSegment(
                display_id=f"{order.id}-{restaurant_id}",
                order=order,
                restaurant_id=restaurant_id,
                restaurant_name=restaurant_name,
                items=group,
                subtotal=subtotal.quantize(CENTS),
                created_on=created_on,
            )
        )

    return segments, unresolved


def build_history(
    orders: list[Order], items_by_order: dict[str, list[HistoryItem]]
) -> OrderHistoryResult:
    """Segment every order, keeping the orders' own ordering."""
    result = OrderHistoryResult()
    for order in orders:
        segments, unresolved = segment_order(order, items_by_order.get(order.id, []))
        result.segments.extend(segments)
        result.unresolved_items.extend(unresolved)
    return result


# =============================================================================
# Fetching
# =============================================================================


async def fetch_history_items(
    store: StoreClient, user_id: str, resolver: ImageResolver
) -> tuple[list[Order], dict[str, list[HistoryItem]]]:
    """
    Read a customer's orders and join their lines to food items and restaurants.

    Returns:
        Orders newest first, and the image-resolved lines of each order.

    Raises:
        StoreError: If any read fails.
    """
    order_rows = await store.select_many(
        "orders",
        eq={"user_id": user_id},
        order_by="created_at",
        descending=True,
    )
    orders = [Order.model_validate(row) for row in order_rows]
    if not orders:
        return [], {}

    item_rows = await store.select_many(
        "order_items", in_={"order_id": [order.id for order in orders]}
    )
    order_items = [OrderItem.model_validate(row) for row in item_rows]

    food_ids = _distinct([item.food_item_id for item in order_items])
    food_items: dict[str, FoodItem] = {}
    if food_ids:
        food_rows = await store.select_many("food_items", in_={"food_item_id": food_ids})
        food_items = {
            str(food.food_item_id): food
            for food in (FoodItem.model_validate(row) for row in food_rows)
        }

    restaurant_ids = _distinct([food.restaurant_id for food in food_items.values()])
    restaurants: dict[str, Restaurant] = {}
    if restaurant_ids:
        restaurant_rows = await store.select_many("restaurants", in_={"id": restaurant_ids})
        restaurants = {
            str(restaurant.id): restaurant
            for restaurant in (Restaurant.model_validate(row) for row in restaurant_rows)
        }

    async def enrich(item: OrderItem) -> HistoryItem:
        food = food_items.get(str(item.food_item_id)) if item.food_item_id else None
        restaurant = restaurants.get(str(food.restaurant_id)) if food else None
        raw_image = (food.image_url if food else None) or item.image_url
        return HistoryItem(
            item=item,
            food_item=food,
            restaurant=restaurant,
            image_url=await resolver.resolve(raw_image),
        )

    enriched = await asyncio.gather(*(enrich(item) for item in order_items))

    items_by_order: dict[str, list[HistoryItem]] = {}
    for entry in enriched:
        items_by_order.setdefault(entry.item.order_id, []).append(entry)

    return orders, items_by_order


class OrderHistory:
    """
    Controller for the customer's order history screen.

    Holds one snapshot of segments for the signed-in customer. A new fetch
    only starts when the customer changes or ``refresh`` is called.
    """

    def __init__(self, store: StoreClient, resolver: ImageResolver | None = None) -> None:
        self._store = store
        self.resolver = resolver or ImageResolver(store)
        self._scope = ViewScope("order-history")
        self._user_id: str | None = None
        self._torn_down = False

        self.state = HistoryState.IDLE
        self.result = OrderHistoryResult()
        self.error: str | None = None

    @property
    def segments(self) -> list[OrderSegment]:
        return self.result.segments

    @property
    def unresolved_items(self) -> list[UnresolvedItem]:
        return self.result.unresolved_items

    async def set_user(self, user: AuthUser | None) -> None:
        """Show history for ``user``; refetches only when the identity changes."""
        if self._torn_down:
            return
        user_id = user.id if user else None
        if user_id == self._user_id and self.state not in (HistoryState.IDLE, HistoryState.ERROR):
            return

        self._scope.close()
        self._scope = ViewScope("order-history")
        self._user_id = user_id
        await self._scope.run(self._load(user_id, self._scope))

    async def refresh(self) -> None:
        if self._torn_down:
            return
        await self._scope.run(self._load(self._user_id, self._scope))

    def dismiss_error(self) -> None:
        self.error = None

    def teardown(self) -> None:
        """Stop the view for good; later calls do nothing."""
        self._torn_down = True
        self._scope.close()

    async def _load(self, user_id: str | None, scope: ViewScope) -> None:
        if user_id is None:
            self.result = OrderHistoryResult()
            self.state = HistoryState.EMPTY
            return

        self.state = HistoryState.LOADING
        try:
            orders, items_by_order = await fetch_history_items(
                self._store, user_id, self.resolver
            )
        except (StoreError, PydanticValidationError) as e:
            if not scope.alive:
                return
            logger.error("Error fetching orders for %s: %s", user_id, e)
            self.result = OrderHistoryResult()
            self.error = str(e)
            self.state = HistoryState.ERROR
            return

        if not scope.alive:
            return

        result = build_history(orders, items_by_order)
        for unresolved in result.unresolved_items:
            logger.warning(
                "Order %s line %r has no resolvable restaurant (%s)",
                unresolved.order_id,
                unresolved.item.name,
                unresolved.reason,
            )

        self.result = result
        self.error = None
        self.state = HistoryState.EMPTY if result.is_empty else HistoryState.READY
