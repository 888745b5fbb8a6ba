"""Favorites service: bookmarks with up-to-date product prices."""

import logging
from typing import Optional

from pydantic import BaseModel

from pricing.engine import PriceScheduleEngine
from shared.data_store import DataStore
from shared.errors import ProductNotFoundError
from shared.models import Favorite, Product

logger = logging.getLogger("favorite_service")


class FavoriteEntry(BaseModel):
    """A favorite together with the product's current state."""
    favorite: Favorite
    product: Product


class FavoriteService:

    def __init__(
        self,
        engine: PriceScheduleEngine,
        data_store: Optional[DataStore] = None,
    ):
        self.engine = engine
        self.data_store = data_store or engine.data_store

    def add_favorite(self, user_id: int, product_id: int) -> FavoriteEntry:
        """Bookmark a product. Adding it again returns the existing favorite."""
        product = self.data_store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        product = self.engine.apply_scheduled_price_change_for_schedule(product)
        favorite = self.data_store.add_favorite(user_id, product_id)
        return FavoriteEntry(favorite=favorite, product=product)

    def list_favorites(self, user_id: int) -> list[FavoriteEntry]:
        """List a user's favorites; products that were deleted are skipped."""
        entries = []
        for favorite in self.data_store.get_favorites(user_id):
            product = self.data_store.get_product(favorite.product_id)
            if product is None:
                continue
            product = self.engine.apply_scheduled_price_change_for_schedule(product)
            entries.append(FavoriteEntry(favorite=favorite, product=product))
        return entries

    def remove_favorite(self, user_id: int, product_id: int) -> bool:
        removed = self.data_store.delete_favorite(user_id, product_id)
        if removed:
            logger.info(f"User {user_id} removed product {product_id} from favorites")
        return removed
