"""
Cart price synchronization.

Cart lines keep their own copy of a product's price so totals don't move
while a customer is browsing. When a product's authoritative price moves
because of a schedule, those copies are rewritten here.
"""

import logging
from typing import Optional

from shared.data_store import DataStore, get_data_store
from shared.models import CartItem

logger = logging.getLogger("cart_price_sync")


class CartPriceSynchronizer:
    """Rewrites the price snapshot of every cart line that references a product."""

    def __init__(self, data_store: Optional[DataStore] = None):
        self.data_store = data_store or get_data_store()

    def sync_for_product(self, product_id: int) -> int:
        """
        Copy the product's current price onto every cart line holding it.

        Returns:
            Number of cart lines written
        """
        return len(self.sync_lines_for_product(product_id))

    def sync_lines_for_product(self, product_id: int) -> list[CartItem]:
        """
        Same as ``sync_for_product`` but returns the lines that were written.

        Only the price fields of each line are written, one line at a time;
        a failed write is logged and the remaining lines are still
        processed. Lines removed from a cart since they were listed are
        skipped.
        """
        product = self.data_store.get_product(product_id)
        if product is None:
            logger.warning(f"Cannot sync carts, product not found: {product_id}")
            return []

        synced = []
        for item in self.data_store.find_cart_items_by_product_id(product_id):
            try:
                updated = self.data_store.update_cart_item_prices(
                    item.id, product.price, product.original_price
                )
            except Exception as e:
                logger.error(f"Failed to sync cart line {item.id} for product {product_id}: {e}")
                continue
            if updated is None:
                logger.debug(f"Cart line {item.id} was removed before it could be synced")
                continue
            synced.append(updated)

        logger.info(f"Synced cart prices for product {product_id} in {len(synced)} cart line(s)")
        return synced
