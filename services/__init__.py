"""
Store services that read and use product prices.

Each one runs lazy schedule evaluation before it trusts a product's price:
- Catalog: product reads and admin schedule updates
- Cart: cart lines and their price snapshots
- Favorites: bookmarked products
"""

from services.catalog import CatalogService
from services.cart import CartService
from services.favorites import FavoriteService

__all__ = [
    "CatalogService",
    "CartService",
    "FavoriteService",
]
