"""
Shared infrastructure for the sewing-machine store.

This package contains code used by the pricing core and the services around it:
- Domain models (Product, CartItem, Favorite, PriceUpdateMessage)
- Data store for JSON-backed persistence
- Settings and the store-timezone clock
- Domain errors
"""

from shared.models import (
    Product,
    CartItem,
    Cart,
    Favorite,
    PriceUpdateMessage,
    PriceUpdateType,
)
from shared.data_store import DataStore
from shared.clock import Clock, FixedClock

__all__ = [
    "Product",
    "CartItem",
    "Cart",
    "Favorite",
    "PriceUpdateMessage",
    "PriceUpdateType",
    "DataStore",
    "Clock",
    "FixedClock",
]
