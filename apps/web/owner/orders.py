"""
Owner order queue - orders containing the restaurant's items, newest first.

Each queued order carries only this restaurant's lines and their subtotal;
lines sold by other restaurants in the same order are not shown.
"""

import logging
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from delivery_schemas import (
    CANCELLABLE_STATUSES,
    TERMINAL_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    QueuedOrder,
    RowId,
    next_status,
)

from apps.web.core.lifecycle import ViewScope
from apps.web.core.preferences import ALL_STATUSES, StatusFilterPreference
from apps.web.store.base import StoreClient
from apps.web.store.exceptions import StoreError, ValidationError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def restaurant_subtotal(lines: list[OrderItem]) -> Decimal:
    """Sum of price x quantity over ``lines``, rounded to cents."""
    return sum((line.line_total for line in lines), Decimal("0")).quantize(CENTS)


async def assemble_order_queue(store: StoreClient, restaurant_id: RowId) -> list[QueuedOrder]:
    """
    Build the restaurant's order queue.

    1. Read the order lines whose food item belongs to the restaurant
    2. Collect their distinct order ids; none means an empty queue and no
       further reads
    3. Read those order headers, newest first
    4. Attach each order's lines and subtotal

    Raises:
        StoreError: If any read fails; nothing partial is returned.
    """
    food_rows = await store.select_many(
        "food_items", columns="food_item_id", eq={"restaurant_id": restaurant_id}
    )
    food_ids = [row["food_item_id"] for row in food_rows]
    if not food_ids:
        return []

    line_rows = await store.select_many("order_items", in_={"food_item_id": food_ids})
    lines = [OrderItem.model_validate(row) for row in line_rows]

    order_ids = list(dict.fromkeys(line.order_id for line in lines))
    if not order_ids:
        return []

    header_rows = await store.select_many(
        "orders",
        in_={"id": order_ids},
        order_by="created_at",
        descending=True,
    )

    queue = []
    for row in header_rows:
        order = Order.model_validate(row)
        relevant = [line for line in lines if line.order_id == order.id]
        queue.append(
            QueuedOrder(
                order=order,
                items=relevant,
                restaurant_subtotal=restaurant_subtotal(relevant),
            )
        )
    return queue


class OrderQueue:
    """
    Controller for the dashboard's orders tab.

    Keeps the last successfully assembled queue. A failed reload leaves it
    untouched and sets ``error`` instead. Status writes are applied to the
    local list only after the store acknowledges them.
    """

    def __init__(
        self,
        store: StoreClient,
        status_filter: StatusFilterPreference | None = None,
    ) -> None:
        self._store = store
        self._filter_pref = status_filter
        self._scope = ViewScope("order-queue")

        self.orders: list[QueuedOrder] = []
        self.loading = False
        self.error: str | None = None
        self.status_filter = status_filter.load() if status_filter else ALL_STATUSES

    # =========================================================================
    # Loading
    # =========================================================================

    async def load(self, restaurant_id: RowId) -> None:
        scope = self._scope
        self.loading = True
        try:
            queue = await assemble_order_queue(self._store, restaurant_id)
        except (StoreError, PydanticValidationError) as e:
            if scope.alive:
                logger.error("Error loading orders for restaurant %s: %s", restaurant_id, e)
                self.error = str(e)
            return
        finally:
            if scope.alive:
                self.loading = False

        if scope.alive:
            self.orders = queue
            self.error = None

    def clear(self) -> None:
        self.orders = []
        self.error = None

    def reset(self) -> None:
        """Drop the queue and discard every load or write still in flight."""
        self._scope.close()
        self._scope = ViewScope("order-queue")
        self.loading = False
        self.clear()

    def teardown(self) -> None:
        self._scope.close()

    # =========================================================================
    # Filtering
    # =========================================================================

    @property
    def filtered_orders(self) -> list[QueuedOrder]:
        if self.status_filter == ALL_STATUSES:
            return list(self.orders)
        return [o for o in self.orders if o.status.value == self.status_filter]

    def set_status_filter(self, value: str) -> None:
        """Change the active filter and persist it."""
        if self._filter_pref is not None:
            self._filter_pref.save(value)
        elif value != ALL_STATUSES and value not in {s.value for s in OrderStatus}:
            raise ValueError(f"Unknown status filter: {value}")
        self.status_filter = value

    # =========================================================================
    # Status changes
    # =========================================================================

    def get(self, order_id: str) -> QueuedOrder | None:
        return next((o for o in self.orders if o.id == order_id), None)

    async def update_status(self, order_id: str, new_status: OrderStatus) -> bool:
        """
        Write a new status and patch the local list once acknowledged.

        Returns:
            True if the store applied the change. On failure the local list
            is unchanged and ``error`` is set.
        """
        scope = self._scope
        patch: dict[str, Any] = {"status": new_status.value}
        try:
            updated = await self._store.update("orders", patch, eq={"id": order_id})
        except StoreError as e:
            if scope.alive:
                logger.error("Failed to update status of order %s: %s", order_id, e)
                self.error = f"Failed to update status. Error: {e.message}."
            return False

        if not scope.alive:
            return False

        if not updated:
            # Row-level policies hide the row instead of raising
            logger.error("Status update for order %s matched no rows", order_id)
            self.error = (
                f'Failed to update status of order {order_id}. '
                'Please check row-level policies on "orders".'
            )
            return False

        self.orders = [
            o.model_copy(update={"order": o.order.model_copy(update={"status": new_status})})
            if o.id == order_id
            else o
            for o in self.orders
        ]
        self.error = None
        logger.info("Order %s marked %s", order_id, new_status.value)
        return True

    def _require(self, order_id: str) -> QueuedOrder:
        queued = self.get(order_id)
        if queued is None:
            raise ValidationError(f"Order {order_id} is not in the queue", fields=["order_id"])
        return queued

    async def advance(self, order_id: str) -> bool:
        """
        Move an order to its next status.

        Raises:
            ValidationError: If the order is unknown or already at the end.
        """
        queued = self._require(order_id)
        target = next_status(queued.status)
        if target is None or queued.status in TERMINAL_STATUSES:
            raise ValidationError(
                f"Order {order_id} cannot advance from {queued.status.value}",
                fields=["status"],
            )
        return await self.update_status(order_id, target)

    async def cancel(self, order_id: str) -> bool:
        """
        Cancel an order that has not left the kitchen.

        Raises:
            ValidationError: If the order is unknown or past cancellation.
        """
        queued = self._require(order_id)
        if queued.status not in CANCELLABLE_STATUSES:
            raise ValidationError(
                f"Order {order_id} cannot be cancelled once {queued.status.value}",
                fields=["status"],
            )
        return await self.update_status(order_id, OrderStatus.CANCELLED)
