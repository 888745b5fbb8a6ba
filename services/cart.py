"""
Cart service.

Cart lines hold a price snapshot. It is refreshed from the product (after
lazy schedule evaluation) whenever a line is added or changed, whenever the
cart is opened, and whenever the schedule engine moves a product's price.
"""

import logging
from typing import Optional

from pricing.engine import PriceScheduleEngine
from shared.data_store import DataStore
from shared.errors import CartItemNotFoundError, ProductNotFoundError
from shared.models import MAX_QUANTITY, Cart, CartItem, Product

logger = logging.getLogger("cart_service")


class CartService:
    """Cart operations for one user at a time, plus cross-cart price sync."""

    def __init__(
        self,
        engine: PriceScheduleEngine,
        data_store: Optional[DataStore] = None,
        max_quantity: int = MAX_QUANTITY,
    ):
        self.engine = engine
        self.data_store = data_store or engine.data_store
        self.max_quantity = min(max_quantity, MAX_QUANTITY)

    def get_cart(self, user_id: int) -> Cart:
        """Open a cart. Every line is re-priced before it is returned."""
        self.sync_cart_prices(user_id)
        return Cart(user_id=user_id, items=self.data_store.get_cart_items(user_id))

    def add_item(self, user_id: int, product_id: int, quantity: int = 1) -> Cart:
        """
        Add a product to the cart, or top up the existing line.

        Quantities are capped at the per-line maximum rather than rejected.
        """
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}")

        product = self._current_product(product_id)
        item = self.data_store.get_cart_item(user_id, product_id)

        if item is not None:
            item.quantity = min(item.quantity + quantity, self.max_quantity)
            _snapshot(item, product)
            self.data_store.save_cart_item(item)
        else:
            self.data_store.create_cart_item(
                user_id=user_id,
                product_id=product.id,
                quantity=min(quantity, self.max_quantity),
                price=product.price,
                original_price=product.original_price,
                product_name=product.title,
                brand_name=product.brand_name,
                brand_slug=product.brand_slug,
            )
        logger.info(f"User {user_id} added {quantity} x product {product_id} at {product.price}")
        return Cart(user_id=user_id, items=self.data_store.get_cart_items(user_id))

    def update_quantity(self, user_id: int, product_id: int, quantity: int) -> Cart:
        """Set a line's quantity; anything below 1 removes the line."""
        if quantity < 1:
            return self.remove_item(user_id, product_id)

        item = self.data_store.get_cart_item(user_id, product_id)
        if item is None:
            raise CartItemNotFoundError(user_id, product_id)

        item.quantity = min(quantity, self.max_quantity)
        product = self.data_store.get_product(product_id)
        if product is not None:
            _snapshot(item, self.engine.apply_scheduled_price_change_for_schedule(product))
        self.data_store.save_cart_item(item)
        return Cart(user_id=user_id, items=self.data_store.get_cart_items(user_id))

    def remove_item(self, user_id: int, product_id: int) -> Cart:
        item = self.data_store.get_cart_item(user_id, product_id)
        if item is None:
            raise CartItemNotFoundError(user_id, product_id)
        self.data_store.delete_cart_item(item.id)
        return Cart(user_id=user_id, items=self.data_store.get_cart_items(user_id))

    def clear_cart(self, user_id: int) -> Cart:
        for item in self.data_store.get_cart_items(user_id):
            self.data_store.delete_cart_item(item.id)
        return Cart(user_id=user_id)

    def sync_cart_prices(self, user_id: int) -> int:
        """
        Re-price every line in one user's cart.

        Lines whose product has since disappeared keep their snapshot;
        lines removed while syncing are not brought back.

        Returns:
            Number of lines written
        """
        synced = 0
        for item in self.data_store.get_cart_items(user_id):
            product = self.data_store.get_product(item.product_id)
            if product is None:
                continue
            product = self.engine.apply_scheduled_price_change_for_schedule(product)
            if self.data_store.update_cart_item_prices(
                item.id, product.price, product.original_price
            ) is not None:
                synced += 1
        return synced

    def sync_cart_prices_for_product(self, product_id: int) -> int:
        """
        Re-price a product in every cart that holds it.

        The product is evaluated first so the copied price is current.

        Returns:
            Number of lines written (0 if the product no longer exists)
        """
        product = self.data_store.get_product(product_id)
        if product is None:
            return 0
        self.engine.apply_scheduled_price_change_for_schedule(product)
        return self.engine.cart_sync.sync_for_product(product_id)

    def _current_product(self, product_id: int) -> Product:
        product = self.data_store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return self.engine.apply_scheduled_price_change_for_schedule(product)


def _snapshot(item: CartItem, product: Product) -> None:
    item.price = product.price
    item.original_price = product.original_price
