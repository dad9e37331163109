"""Owner product catalog - the restaurant's food items."""

import logging
import time
from collections.abc import Callable
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError as PydanticValidationError

from delivery_schemas import FoodItem, ProductForm, RowId

from apps.web.store.base import StoreClient
from apps.web.store.exceptions import StoreError, ValidationError

logger = logging.getLogger(__name__)


def new_food_item_id(restaurant_id: RowId, now: Callable[[], float] = time.time) -> str:
    """Client-generated id for a new item: ``{restaurantId}_{epoch ms}``."""
    return f"{restaurant_id}_{int(now() * 1000)}"


def parse_product_form(form: ProductForm) -> tuple[Decimal, int]:
    """
    Validate the product editor and parse price and stock.

    Raises:
        ValidationError: If name, price or stock is missing or malformed.
    """
    missing = [name for name in ("name", "price", "stock") if not getattr(form, name).strip()]
    if missing:
        raise ValidationError(
            "Please fill in all required fields (Name, Price, Stock)", fields=missing
        )

    try:
        price = Decimal(form.price.strip())
    except InvalidOperation as e:
        raise ValidationError("Price must be a number", fields=["price"]) from e
    if not price.is_finite() or price < 0:
        raise ValidationError("Price must be zero or more", fields=["price"])

    try:
        stock = int(form.stock.strip())
    except ValueError as e:
        raise ValidationError("Stock must be a whole number", fields=["stock"]) from e
    if stock < 0:
        raise ValidationError("Stock must be zero or more", fields=["stock"])

    return price, stock


class ProductCatalog:
    """Controller for the dashboard's products tab."""

    def __init__(
        self,
        store: StoreClient,
        restaurant_id: RowId,
        now: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self.restaurant_id = restaurant_id
        self._now = now

        self.products: list[FoodItem] = []
        self.error: str | None = None

    async def load(self) -> None:
        try:
            rows = await self._store.select_many(
                "food_items",
                eq={"restaurant_id": self.restaurant_id},
                order_by="name",
            )
            self.products = [FoodItem.model_validate(row) for row in rows]
        except (StoreError, PydanticValidationError) as e:
            logger.error("Error loading products for %s: %s", self.restaurant_id, e)
            self.error = str(e)

    async def save(self, form: ProductForm, editing: FoodItem | None = None) -> FoodItem | None:
        """
        Create a product, or update ``editing`` in place.

        Returns:
            The saved product, or None if the store rejected the write.

        Raises:
            ValidationError: If the form is incomplete; nothing is sent.
        """
        price, stock = parse_product_form(form)
        food_item_id = editing.food_item_id if editing else new_food_item_id(
            self.restaurant_id, self._now
        )
        product = FoodItem(
            food_item_id=food_item_id,
            name=form.name.strip(),
            price=price,
            stock=stock,
            description=form.description,
            image_url=form.image_url or None,
            restaurant_id=self.restaurant_id,
        )
        row = product.model_dump(mode="json")
        row["price"] = float(price)

        try:
            if editing:
                updated = await self._store.update(
                    "food_items", row, eq={"food_item_id": food_item_id}
                )
            else:
                updated = [await self._store.insert("food_items", row)]
        except StoreError as e:
            logger.error("Error saving product %s: %s", food_item_id, e)
            self.error = f"Failed to save product: {e.message}"
            return None

        if not updated:
            # Row-level policies hide the row instead of raising
            logger.error("Product update for %s matched no rows", food_item_id)
            self.error = (
                f"Failed to save product {food_item_id}. "
                'Please check row-level policies on "food_items".'
            )
            return None

        self.error = None
        await self.load()
        return product

    async def delete(self, food_item_id: str, confirm: Callable[[], bool]) -> bool:
        """
        Delete a product after the owner confirms.

        Nothing is sent unless ``confirm()`` returns True.
        """
        if not confirm():
            return False

        try:
            await self._store.delete("food_items", eq={"food_item_id": food_item_id})
        except StoreError as e:
            logger.error("Error deleting product %s: %s", food_item_id, e)
            self.error = f"Failed to delete product: {e.message}"
            return False

        self.error = None
        await self.load()
        return True

    @staticmethod
    def form_for(product: FoodItem) -> ProductForm:
        """Editor fields pre-filled from an existing product."""
        return ProductForm(
            name=product.name,
            price=str(product.price),
            stock=str(product.stock),
            description=product.description or "",
            image_url=product.image_url if isinstance(product.image_url, str) else "",
        )
