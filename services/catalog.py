"""
Catalog service.

Product reads always go through the schedule engine first, so whatever a
caller sees is the price the schedule says right now, even between sweeps.
Admin schedule updates live here too, since they are what put a product
under the engine's control.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pricing.engine import PriceScheduleEngine
from shared.clock import to_store_time
from shared.data_store import DataStore
from shared.errors import InvalidScheduleError, ProductNotFoundError
from shared.models import PriceUpdateMessage, PriceUpdateType, Product, to_money

logger = logging.getLogger("catalog_service")


class CatalogService:
    """Product reads with lazy schedule evaluation, plus schedule admin."""

    def __init__(
        self,
        engine: PriceScheduleEngine,
        data_store: Optional[DataStore] = None,
    ):
        self.engine = engine
        self.data_store = data_store or engine.data_store

    def list_products(self, include_inactive: bool = False) -> list[Product]:
        """List products (public listing hides inactive ones)."""
        products = self.data_store.get_products(active_only=not include_inactive)
        return [self.engine.apply_scheduled_price_change_for_schedule(p) for p in products]

    def get_product(self, product_id: int) -> Product:
        product = self.data_store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return self.engine.apply_scheduled_price_change_for_schedule(product)

    def set_price_schedule(
        self,
        product_id: int,
        scheduled_price: Decimal,
        start: datetime,
        end: datetime,
    ) -> Product:
        """
        Attach (or replace) a price schedule.

        The current price is remembered as the pre-schedule price unless a
        schedule already captured one; replacing a live schedule must not
        mistake the sale price for the regular one. The product is then
        evaluated immediately so price and badge match the new window.
        Aware start and end values are converted to store time.

        Raises:
            ProductNotFoundError: Unknown product
            InvalidScheduleError: End before start, or a negative price
        """
        if start is None or end is None or scheduled_price is None:
            raise InvalidScheduleError("Scheduled price, start and end are all required")
        start = to_store_time(start, self.engine.clock.zone)
        end = to_store_time(end, self.engine.clock.zone)
        if end < start:
            raise InvalidScheduleError(f"Schedule ends ({end}) before it starts ({start})")
        scheduled_price = to_money(scheduled_price)
        if scheduled_price < 0:
            raise InvalidScheduleError(f"Scheduled price must not be negative: {scheduled_price}")

        with self.engine.lock_product(product_id):
            product = self.data_store.get_product(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            if product.original_price_before_schedule is None:
                product.original_price_before_schedule = product.price
            product.scheduled_price = scheduled_price
            product.price_start_date = start
            product.price_end_date = end
            product = self.data_store.save_product(product)

        logger.info(
            f"Scheduled {scheduled_price} for product {product_id} from {start} to {end}"
        )
        return self.engine.apply_scheduled_price_change_for_schedule(product)

    def clear_price_schedule(self, product_id: int) -> Product:
        """
        Remove a product's schedule.

        If the scheduled price is the one currently live, the pre-schedule
        price comes back and carts are resynced. The sale badge is left as
        it is; after a manual removal it's the admin's call.
        """
        with self.engine.lock_product(product_id):
            product = self.data_store.get_product(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            restored = (
                product.original_price_before_schedule is not None
                and product.price == product.scheduled_price
            )
            if restored:
                product.price = product.original_price_before_schedule
            product.scheduled_price = None
            product.price_start_date = None
            product.price_end_date = None
            product.original_price_before_schedule = None
            product = self.data_store.save_product(product)

        logger.info(f"Cleared price schedule for product {product_id}")
        if restored:
            self._announce_removal(product)
        return product

    def _announce_removal(self, product: Product) -> None:
        try:
            self.engine.cart_sync.sync_for_product(product.id)
        except Exception as e:
            logger.error(f"Error syncing cart prices for product {product.id}: {e}")
        self.engine.notifier.broadcast(PriceUpdateMessage(
            product_id=product.id,
            new_price=product.price,
            original_price=product.price,
            message="Price reverted: Schedule removed",
            type=PriceUpdateType.PRICE_REVERTED,
        ))
