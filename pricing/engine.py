"""
Price schedule engine.

Ties the evaluator to the outside world: loads a product, evaluates its
schedule, saves the result, brings cart lines back in line and tells
connected clients. Two call sites share this one path:

- the periodic sweep (``sweep_all``), driven by the scheduler trigger
- lazy evaluation (``apply_scheduled_price_change_for_schedule``), called
  whenever a product is read, added to a cart or added to favorites

The stored price is the source of truth. Once it is saved, failures in cart
sync or notification are logged and left for the next evaluation to fix.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

from notifications.fanout import BrokerPriceNotifier, PriceNotifier
from pricing.cart_sync import CartPriceSynchronizer
from pricing.evaluator import EvaluationResult, evaluate
from shared.clock import Clock
from shared.config import get_settings
from shared.data_store import DataStore, get_data_store
from shared.models import PriceUpdateMessage, PriceUpdateType, Product

logger = logging.getLogger("price_schedule_engine")

TRANSITION_MESSAGES = {
    PriceUpdateType.PRICE_CHANGED: "Price updated: Scheduled discount applied",
    PriceUpdateType.PRICE_REVERTED: "Price reverted: Schedule not started yet",
    PriceUpdateType.SCHEDULE_ENDED: "Price reverted: Schedule ended",
}


class KeyedLock:
    """One re-entrant lock per key, created on first use."""

    def __init__(self):
        self._locks: dict = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, key):
        with self._guard:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield


@dataclass
class SweepReport:
    """Summary of one sweep over all scheduled products."""
    evaluated: int = 0
    changed: int = 0
    notified: int = 0
    failed: list[int] = field(default_factory=list)


def build_price_update(result: EvaluationResult, before: Product) -> PriceUpdateMessage:
    """
    Build the client message for an evaluation that moved a price.

    ``before`` is the product as it was evaluated; for an ended schedule the
    result has already cleared the schedule fields.
    """
    product = result.product
    if result.transition == PriceUpdateType.PRICE_CHANGED:
        new_price = product.scheduled_price
        original_price = product.original_price_before_schedule
    elif result.transition == PriceUpdateType.PRICE_REVERTED:
        new_price = original_price = product.original_price_before_schedule
    else:
        new_price = original_price = product.price

    return PriceUpdateMessage(
        product_id=before.id,
        new_price=new_price,
        original_price=original_price,
        message=TRANSITION_MESSAGES[result.transition],
        type=result.transition,
    )


class PriceScheduleEngine:
    """
    Applies price schedules to stored products.

    Example:
        engine = PriceScheduleEngine()

        # Called from a product read path
        product = engine.apply_scheduled_price_change_for_schedule(product)

        # Called every 30 seconds by the trigger
        report = engine.sweep_all()
    """

    def __init__(
        self,
        data_store: Optional[DataStore] = None,
        notifier: Optional[PriceNotifier] = None,
        cart_sync: Optional[CartPriceSynchronizer] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the engine.

        Args:
            data_store: Product and cart line storage
            notifier: Where price updates are announced
            cart_sync: Rewrites cart snapshots after a price move
            clock: Source of "now" in the store timezone
        """
        self.data_store = data_store or get_data_store()
        self.notifier = notifier or BrokerPriceNotifier()
        self.cart_sync = cart_sync or CartPriceSynchronizer(self.data_store)
        self.clock = clock or Clock(get_settings().zone)
        self._locks = KeyedLock()

    def evaluate_and_apply(self, product: Product) -> EvaluationResult:
        """
        Evaluate one product's schedule and make the result stick.

        Evaluations of the same product are serialized. The product is
        re-read under the lock so a concurrent writer's changes are seen;
        the passed-in copy is used only when the store doesn't have it.

        Raises:
            Whatever the store raises when saving the product
        """
        with self._locks.hold(product.id):
            current = self.data_store.get_product(product.id) or product
            result = evaluate(current, self.clock.now(), self.clock.zone)

            if result.changed:
                result.product = self.data_store.save_product(result.product)
                logger.debug(
                    f"Product {product.id}: price {current.price} -> {result.new_price}, "
                    f"on sale={result.new_is_on_sale}"
                )

            if result.notify:
                logger.info(f"Product {product.id}: {result.transition.value} (price {result.new_price})")
                self._propagate(result, current)

            return result

    def lock_product(self, product_id: int):
        """Hold the per-product lock, for writers outside the engine."""
        return self._locks.hold(product_id)

    def apply_scheduled_price_change_for_schedule(self, product: Product) -> Product:
        """
        Lazy-evaluation entry point for read, cart and favorite paths.

        Returns:
            The product with its authoritative price
        """
        return self.evaluate_and_apply(product).product

    def sweep_all(self) -> SweepReport:
        """
        Evaluate every product that carries a schedule.

        A product that fails is logged and counted; the rest of the sweep
        carries on.
        """
        report = SweepReport()
        products = self.data_store.find_all_with_active_or_pending_schedule()
        if not products:
            return report

        for product in products:
            report.evaluated += 1
            try:
                result = self.evaluate_and_apply(product)
            except Exception:
                logger.exception(f"Error checking scheduled price for product {product.id}")
                report.failed.append(product.id)
                continue
            if result.changed:
                report.changed += 1
            if result.notify:
                report.notified += 1

        logger.info(
            f"Sweep finished: {report.evaluated} evaluated, {report.changed} changed, "
            f"{report.notified} notified, {len(report.failed)} failed"
        )
        return report

    def _propagate(self, result: EvaluationResult, before: Product) -> None:
        message = build_price_update(result, before)

        synced_lines = []
        try:
            synced_lines = self.cart_sync.sync_lines_for_product(before.id)
        except Exception as e:
            logger.error(f"Error syncing cart prices for product {before.id}: {e}")

        try:
            self.notifier.broadcast(message)
            for user_id in sorted({line.user_id for line in synced_lines}):
                self.notifier.send_to_user(user_id, message)
        except Exception as e:
            logger.error(f"Error sending price update for product {before.id}: {e}")
