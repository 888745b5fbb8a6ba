"""
Domain models for the sewing-machine store.

These models cover the part of the catalog that takes part in scheduled
pricing: products, the cart lines that snapshot their prices, favorites,
and the wire message pushed to connected clients when a price moves.

Design decisions:
- Using Pydantic for validation and serialization
- Money is Decimal with two places, never float
- Schedule dates are naive datetimes in the store timezone
- Models are mutable; services copy them in and out of the data store
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


CENTS = Decimal("0.01")

# Hard limit for a single cart line
MAX_QUANTITY = 50


def to_money(value) -> Optional[Decimal]:
    """Quantize a price to two decimal places (None passes through)."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


# =============================================================================
# Enums
# =============================================================================

class PriceUpdateType(str, Enum):
    """
    Kinds of price update pushed to clients.

    SCHEDULE_STARTED is part of the wire vocabulary clients understand, but
    the schedule engine itself reports activation as PRICE_CHANGED.
    """
    PRICE_CHANGED = "PRICE_CHANGED"         # Scheduled price is live
    PRICE_REVERTED = "PRICE_REVERTED"       # Schedule pending, base price restored
    SCHEDULE_STARTED = "SCHEDULE_STARTED"
    SCHEDULE_ENDED = "SCHEDULE_ENDED"       # Window passed, schedule cleared


# =============================================================================
# Catalog
# =============================================================================

class Product(BaseModel):
    """
    Product entity, the authoritative source of a price.

    The four schedule fields travel together: a product either has a
    complete schedule or it has none. ``original_price_before_schedule`` is
    the price to come back to once the promotion is over.
    """
    id: int = Field(..., description="Unique product identifier")
    title: str = Field(..., description="Display name")
    brand_name: Optional[str] = Field(default=None)
    brand_slug: Optional[str] = Field(default=None)
    price: Decimal = Field(..., ge=0, description="Current effective price")
    original_price: Optional[Decimal] = Field(
        default=None,
        description="Struck-through price shown next to a sale price"
    )
    is_active: bool = Field(default=True)
    in_stock: bool = Field(default=True)
    is_on_sale: bool = Field(default=False, description="Sale badge")

    scheduled_price: Optional[Decimal] = Field(default=None, ge=0)
    price_start_date: Optional[datetime] = Field(default=None)
    price_end_date: Optional[datetime] = Field(default=None)
    original_price_before_schedule: Optional[Decimal] = Field(default=None)

    updated_at: Optional[datetime] = Field(default=None)

    @field_validator(
        "price", "original_price", "scheduled_price", "original_price_before_schedule"
    )
    @classmethod
    def _two_places(cls, value):
        return to_money(value)

    def has_schedule(self) -> bool:
        """True only when price, start and end of the schedule are all set."""
        return (
            self.scheduled_price is not None
            and self.price_start_date is not None
            and self.price_end_date is not None
        )


class CartItem(BaseModel):
    """
    A line in a user's cart.

    ``price`` and ``original_price`` are a snapshot taken when the line was
    added. They only move when the cart is explicitly synchronized.
    """
    id: int = Field(..., description="Unique cart line identifier")
    user_id: int = Field(..., description="Cart owner")
    product_id: int = Field(..., description="Reference to product")
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY)
    price: Decimal = Field(..., ge=0, description="Price snapshot")
    original_price: Optional[Decimal] = Field(default=None)
    product_name: Optional[str] = Field(default=None)
    brand_name: Optional[str] = Field(default=None)
    brand_slug: Optional[str] = Field(default=None)

    @field_validator("price", "original_price")
    @classmethod
    def _two_places(cls, value):
        return to_money(value)

    @computed_field
    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


class Cart(BaseModel):
    """A user's cart as returned to callers (lines are stored individually)."""
    user_id: int
    items: list[CartItem] = Field(default_factory=list)

    @computed_field
    @property
    def total(self) -> Decimal:
        return to_money(sum((item.line_total for item in self.items), Decimal("0")))

    def contains_product(self, product_id: int) -> bool:
        return any(item.product_id == product_id for item in self.items)


class Favorite(BaseModel):
    """A product bookmarked by a user."""
    id: int
    user_id: int
    product_id: int
    created_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# Wire messages
# =============================================================================

class PriceUpdateMessage(BaseModel):
    """
    Price update pushed over the WebSocket channels.

    Field names go out in camelCase (``productId``, ``newPrice`` ...), which
    is what the storefront client listens for. Delivery is best effort; a
    lost message is corrected by the next evaluation of the product.
    """
    product_id: int = Field(..., alias="productId")
    new_price: Optional[Decimal] = Field(default=None, alias="newPrice")
    original_price: Optional[Decimal] = Field(default=None, alias="originalPrice")
    message: str
    type: PriceUpdateType

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def to_wire(self) -> dict:
        """JSON-ready payload with camelCase keys and prices as floats."""
        payload = self.model_dump(by_alias=True)
        for key in ("newPrice", "originalPrice"):
            if payload[key] is not None:
                payload[key] = float(payload[key])
        return payload
