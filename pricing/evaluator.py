"""
Price schedule evaluation.

Given a product and the current time, decide what the product's price and
sale badge should be. The decision depends only on the inputs, so the same
function serves the periodic sweep and every lazy read.

Phases of a schedule window [start, end], both bounds inclusive:

    now < start          -> PENDING: base price, no badge
    start <= now <= end  -> ACTIVE:  scheduled price, badge on
    now > end            -> ENDED:   base price, schedule cleared

Evaluating a product that is already in the right state changes nothing and
asks for no notification, which is what makes overlapping sweeps and reads
safe.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Optional

from shared.clock import to_store_time
from shared.models import Product, PriceUpdateType


@dataclass
class EvaluationResult:
    """
    Outcome of evaluating one product.

    Attributes:
        product: The product as it should be stored (a copy; the input is
            never touched)
        new_price: Effective price after evaluation
        new_is_on_sale: Sale badge after evaluation
        transition: Which phase the schedule is in, None without a schedule
        changed: Some field differs from the input and must be persisted
        notify: Price, badge or schedule moved; carts and clients must hear
    """
    product: Product
    new_price: Decimal
    new_is_on_sale: bool
    transition: Optional[PriceUpdateType]
    changed: bool
    notify: bool


def _unchanged(product: Product) -> EvaluationResult:
    return EvaluationResult(
        product=product.model_copy(deep=True),
        new_price=product.price,
        new_is_on_sale=product.is_on_sale,
        transition=None,
        changed=False,
        notify=False,
    )


def evaluate(product: Product, now: datetime, zone: Optional[tzinfo] = None) -> EvaluationResult:
    """
    Evaluate a product's price schedule at ``now``.

    Args:
        product: Current product state
        now: Current time. Naive values are taken as store time; aware
            values are converted into ``zone`` first.
        zone: The store timezone

    Returns:
        EvaluationResult describing the target state
    """
    if not product.has_schedule():
        return _unchanged(product)

    now = to_store_time(now, zone)
    updates = {}

    # First evaluation of a fresh schedule: remember the price to come back to
    base_price = product.original_price_before_schedule
    if base_price is None:
        base_price = product.price
        updates["original_price_before_schedule"] = base_price

    if now < product.price_start_date:
        transition = PriceUpdateType.PRICE_REVERTED
        target_price, target_on_sale = base_price, False
    elif now <= product.price_end_date:
        transition = PriceUpdateType.PRICE_CHANGED
        target_price, target_on_sale = product.scheduled_price, True
    else:
        transition = PriceUpdateType.SCHEDULE_ENDED
        target_price, target_on_sale = base_price, False
        updates.update(
            scheduled_price=None,
            price_start_date=None,
            price_end_date=None,
            original_price_before_schedule=None,
        )

    moved = transition == PriceUpdateType.SCHEDULE_ENDED
    if product.price != target_price:
        updates["price"] = target_price
        moved = True
    if product.is_on_sale != target_on_sale:
        updates["is_on_sale"] = target_on_sale
        moved = True

    return EvaluationResult(
        product=product.model_copy(update=updates, deep=True),
        new_price=target_price,
        new_is_on_sale=target_on_sale,
        transition=transition,
        changed=bool(updates),
        notify=moved,
    )
