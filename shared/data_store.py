"""
JSON-backed data store for the sewing-machine store.

This module provides the data access layer the pricing core talks to. It
loads products, cart lines and favorites from JSON fixture files and keeps
them in memory. In production this would sit in front of a database.

Design decisions:
- Fixtures are loaded lazily on first access
- Reads hand out copies; nothing changes until ``save_*`` is called
- Saves are last-write-wins on the whole record; price sync on cart
  lines writes only the price fields
- One lock guards all collections so the sweep thread and request
  threads can share an instance
"""

import json
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

from shared.config import get_settings
from shared.models import CartItem, Favorite, Product, to_money


class DataStore:
    """
    Central data store for products, cart lines and favorites.

    Gateway operations used by the price schedule core:
    - ``find_all_with_active_or_pending_schedule()``
    - ``get_product()`` / ``save_product()``
    - ``find_cart_items_by_product_id()`` / ``update_cart_item_prices()``

    The rest serves the cart and favorites services.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the data store.

        Args:
            data_dir: Directory holding products.json, cart_items.json and
                     favorites.json. Defaults to ./data at the project root.
                     Missing files load as empty collections.
        """
        if data_dir is None:
            data_dir = Path(__file__).parent.parent / "data"

        self.data_dir = Path(data_dir)
        self._lock = threading.RLock()

        # In-memory caches - loaded lazily
        self._products: Optional[dict[int, Product]] = None
        self._cart_items: Optional[dict[int, CartItem]] = None
        self._favorites: Optional[dict[int, Favorite]] = None

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """Load a JSON fixture file."""
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        with open(filepath, "r") as f:
            return json.load(f)

    def _ensure_products_loaded(self):
        if self._products is None:
            data = self._load_json("products.json")
            self._products = {p["id"]: Product(**p) for p in data}

    def _ensure_cart_items_loaded(self):
        if self._cart_items is None:
            data = self._load_json("cart_items.json")
            self._cart_items = {c["id"]: CartItem(**c) for c in data}

    def _ensure_favorites_loaded(self):
        if self._favorites is None:
            data = self._load_json("favorites.json")
            self._favorites = {f["id"]: Favorite(**f) for f in data}

    # =========================================================================
    # Product Operations
    # =========================================================================

    def get_product(self, product_id: int) -> Optional[Product]:
        """Get a copy of a product by ID."""
        with self._lock:
            self._ensure_products_loaded()
            product = self._products.get(product_id)
            return product.model_copy(deep=True) if product else None

    def get_products(self, active_only: bool = False) -> list[Product]:
        """Get all products, optionally only the ones listed publicly."""
        with self._lock:
            self._ensure_products_loaded()
            return [
                p.model_copy(deep=True) for p in self._products.values()
                if p.is_active or not active_only
            ]

    def find_all_with_active_or_pending_schedule(self) -> list[Product]:
        """
        Find every product carrying a complete price schedule.

        This is the working set of a sweep. Products with only some of the
        schedule fields set are left out.
        """
        with self._lock:
            self._ensure_products_loaded()
            return [
                p.model_copy(deep=True) for p in self._products.values()
                if p.has_schedule()
            ]

    def save_product(self, product: Product) -> Product:
        """Insert or replace a product and stamp ``updated_at``."""
        with self._lock:
            self._ensure_products_loaded()
            stored = product.model_copy(deep=True)
            stored.updated_at = datetime.now()
            self._products[stored.id] = stored
            return stored.model_copy(deep=True)

    # =========================================================================
    # Cart Operations
    # =========================================================================

    def get_cart_items(self, user_id: int) -> list[CartItem]:
        """Get all lines in a user's cart, in insertion order."""
        with self._lock:
            self._ensure_cart_items_loaded()
            return [
                item.model_copy() for item in self._cart_items.values()
                if item.user_id == user_id
            ]

    def get_cart_item(self, user_id: int, product_id: int) -> Optional[CartItem]:
        """Get the line for a product in a user's cart, if any."""
        with self._lock:
            self._ensure_cart_items_loaded()
            for item in self._cart_items.values():
                if item.user_id == user_id and item.product_id == product_id:
                    return item.model_copy()
            return None

    def find_cart_items_by_product_id(self, product_id: int) -> list[CartItem]:
        """
        Find every cart line, across all users, that references a product.

        This is the key query for keeping price snapshots in sync.
        """
        with self._lock:
            self._ensure_cart_items_loaded()
            return [
                item.model_copy() for item in self._cart_items.values()
                if item.product_id == product_id
            ]

    def create_cart_item(self, **fields) -> CartItem:
        """Create a new cart line with the next free ID."""
        with self._lock:
            self._ensure_cart_items_loaded()
            next_id = max(self._cart_items, default=0) + 1
            item = CartItem(id=next_id, **fields)
            self._cart_items[item.id] = item
            return item.model_copy()

    def save_cart_item(self, item: CartItem) -> CartItem:
        """Insert or replace a cart line."""
        with self._lock:
            self._ensure_cart_items_loaded()
            self._cart_items[item.id] = item.model_copy()
            return item.model_copy()

    def update_cart_item_prices(
        self,
        item_id: int,
        price: Decimal,
        original_price: Optional[Decimal],
    ) -> Optional[CartItem]:
        """
        Overwrite only the price snapshot of a cart line.

        Quantity and labels are left exactly as stored, so a concurrent
        quantity change survives. A line removed in the meantime stays
        removed.

        Returns:
            The updated line, or None if it no longer exists
        """
        with self._lock:
            self._ensure_cart_items_loaded()
            item = self._cart_items.get(item_id)
            if item is None:
                return None
            item.price = to_money(price)
            item.original_price = to_money(original_price)
            return item.model_copy()

    def delete_cart_item(self, item_id: int) -> bool:
        """Remove a cart line. Returns False if it did not exist."""
        with self._lock:
            self._ensure_cart_items_loaded()
            return self._cart_items.pop(item_id, None) is not None

    # =========================================================================
    # Favorite Operations
    # =========================================================================

    def get_favorites(self, user_id: int) -> list[Favorite]:
        with self._lock:
            self._ensure_favorites_loaded()
            return [
                f.model_copy() for f in self._favorites.values()
                if f.user_id == user_id
            ]

    def add_favorite(self, user_id: int, product_id: int) -> Favorite:
        """Bookmark a product; adding the same product twice returns the existing row."""
        with self._lock:
            self._ensure_favorites_loaded()
            for favorite in self._favorites.values():
                if favorite.user_id == user_id and favorite.product_id == product_id:
                    return favorite.model_copy()
            next_id = max(self._favorites, default=0) + 1
            favorite = Favorite(id=next_id, user_id=user_id, product_id=product_id)
            self._favorites[favorite.id] = favorite
            return favorite.model_copy()

    def delete_favorite(self, user_id: int, product_id: int) -> bool:
        with self._lock:
            self._ensure_favorites_loaded()
            for favorite_id, favorite in list(self._favorites.items()):
                if favorite.user_id == user_id and favorite.product_id == product_id:
                    del self._favorites[favorite_id]
                    return True
            return False

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """
        Force reload all data from JSON files.

        Useful for tests that modify fixture files.
        """
        with self._lock:
            self._products = None
            self._cart_items = None
            self._favorites = None


# Module-level singleton for convenience
# In tests, create a new DataStore instance with test fixtures
_default_store: Optional[DataStore] = None


def get_data_store() -> DataStore:
    """Get the default data store singleton."""
    global _default_store
    if _default_store is None:
        _default_store = DataStore(data_dir=get_settings().data_dir)
    return _default_store
