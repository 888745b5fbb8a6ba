"""
Demonstration of a scheduled price running its full course.

Uses the fixture data with a fixed clock so the schedule of product 2
(Usha Janome Dream Stitch, 12499.00 -> 9999.00 from 2025-01-01 00:00 to
2025-01-07 23:59) can be walked through pending, active and ended.
"""

from datetime import datetime

from notifications.broker import MessageBroker
from notifications.fanout import BrokerPriceNotifier
from pricing.engine import PriceScheduleEngine
from shared.clock import FixedClock
from shared.config import configure_logging
from shared.data_store import DataStore

DEMO_PRODUCT_ID = 2


def _print_state(data_store: DataStore, clock: FixedClock) -> None:
    product = data_store.get_product(DEMO_PRODUCT_ID)
    print(f"\n  now            : {clock.now():%Y-%m-%d %H:%M}")
    print(f"  price          : {product.price}  (on sale: {product.is_on_sale})")
    print(f"  scheduled price: {product.scheduled_price}")
    for item in data_store.find_cart_items_by_product_id(DEMO_PRODUCT_ID):
        print(f"  cart line {item.id} (user {item.user_id}): {item.price}")


def run_price_schedule_demo():
    """
    Walk one product through its schedule window.

    This shows:
    1. Before the window the regular price stays in place
    2. Inside the window the scheduled price is applied and carts follow
    3. After the window the price comes back and the schedule is cleared
    4. Sweeping again changes nothing
    """
    configure_logging()

    print("\n" + "=" * 70)
    print("DEMO: Scheduled price window")
    print("=" * 70)

    data_store = DataStore()
    broker = MessageBroker()
    clock = FixedClock(datetime(2024, 12, 31, 12, 0))
    engine = PriceScheduleEngine(
        data_store=data_store,
        notifier=BrokerPriceNotifier(broker),
        clock=clock,
    )

    for label, moment in (
        ("Before the window", datetime(2024, 12, 31, 12, 0)),
        ("Inside the window", datetime(2025, 1, 3, 12, 0)),
        ("After the window", datetime(2025, 1, 8, 0, 1)),
    ):
        clock.set(moment)
        print("\n" + "-" * 70)
        print(f"SWEEP: {label}")
        print("-" * 70)
        report = engine.sweep_all()
        print(f"  {report.evaluated} evaluated, {report.changed} changed, {report.notified} notified")
        _print_state(data_store, clock)

    print("\n" + "-" * 70)
    print("SWEEP: Again, nothing left to do")
    print("-" * 70)
    report = engine.sweep_all()
    print(f"  {report.evaluated} evaluated, {report.changed} changed, {report.notified} notified")

    print("\nPrice updates pushed:")
    for message in broker.get_message_log():
        print(f"  {message.destination}: {message.payload['type']} -> {message.payload['newPrice']}")

    return broker.get_message_log()


if __name__ == "__main__":
    run_price_schedule_demo()
