"""
Tests for the price schedule engine.

These run the engine against the fixture data with a fixed clock and an
in-memory broker, so saved prices, cart lines and pushed messages can all
be checked.
"""

import threading
from datetime import datetime
from decimal import Decimal

import pytest

from notifications.broker import BROADCAST_PRICE_TOPIC, user_destination
from notifications.fanout import BrokerPriceNotifier, PriceNotifier
from pricing.cart_sync import CartPriceSynchronizer
from pricing.engine import PriceScheduleEngine, SweepReport
from shared.clock import FixedClock
from shared.data_store import DataStore
from shared.models import PriceUpdateType


class FailingSaveStore(DataStore):
    """DataStore whose product saves fail for chosen IDs."""

    def __init__(self, data_dir, failing_ids):
        super().__init__(data_dir=data_dir)
        self.failing_ids = set(failing_ids)

    def save_product(self, product):
        if product.id in self.failing_ids:
            raise RuntimeError(f"database unavailable for product {product.id}")
        return super().save_product(product)


class ExplodingNotifier(PriceNotifier):
    def broadcast(self, message):
        raise ConnectionError("socket closed")

    def send_to_user(self, user_id, message):
        raise ConnectionError("socket closed")


class ExplodingCartSync(CartPriceSynchronizer):
    def sync_lines_for_product(self, product_id):
        raise RuntimeError("cart table locked")


class TestEvaluateAndApply:
    """Single-product path shared by the sweep and lazy reads."""

    def test_applies_scheduled_price(self, engine, data_store, scheduled_product_id):
        product = data_store.get_product(scheduled_product_id)

        result = engine.evaluate_and_apply(product)

        assert result.transition == PriceUpdateType.PRICE_CHANGED
        stored = data_store.get_product(scheduled_product_id)
        assert stored.price == Decimal("9999.00")
        assert stored.is_on_sale is True
        assert stored.original_price_before_schedule == Decimal("12499.00")
        assert stored.updated_at is not None

    def test_syncs_cart_lines(self, engine, data_store, scheduled_product_id):
        engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))

        lines = data_store.find_cart_items_by_product_id(scheduled_product_id)
        assert len(lines) == 2
        assert all(line.price == Decimal("9999.00") for line in lines)

    def test_broadcasts_price_update(self, engine, broker, data_store, scheduled_product_id):
        engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))

        messages = broker.get_message_log(BROADCAST_PRICE_TOPIC)
        assert len(messages) == 1
        payload = messages[0].payload
        assert payload["productId"] == scheduled_product_id
        assert payload["type"] == "PRICE_CHANGED"
        assert payload["newPrice"] == 9999.0
        assert payload["originalPrice"] == 12499.0
        assert payload["message"] == "Price updated: Scheduled discount applied"

    def test_notifies_each_cart_owner(self, engine, broker, data_store, scheduled_product_id):
        engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))

        assert len(broker.get_message_log(user_destination(1))) == 1
        assert len(broker.get_message_log(user_destination(2))) == 1
        assert broker.get_message_log(user_destination(3)) == []

    def test_second_run_is_silent(self, engine, broker, data_store, scheduled_product_id):
        engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))
        broker.clear_message_log()

        result = engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))

        assert result.changed is False
        assert result.notify is False
        assert broker.get_message_log() == []

    def test_schedule_end_restores_price_everywhere(
        self, engine, clock, broker, data_store, scheduled_product_id
    ):
        engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))
        clock.set(datetime(2025, 1, 8, 0, 1))
        broker.clear_message_log()

        result = engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))

        assert result.transition == PriceUpdateType.SCHEDULE_ENDED
        stored = data_store.get_product(scheduled_product_id)
        assert stored.price == Decimal("12499.00")
        assert stored.is_on_sale is False
        assert not stored.has_schedule()
        assert stored.original_price_before_schedule is None
        for line in data_store.find_cart_items_by_product_id(scheduled_product_id):
            assert line.price == Decimal("12499.00")
            assert line.original_price == stored.original_price

        payload = broker.get_message_log(BROADCAST_PRICE_TOPIC)[0].payload
        assert payload["type"] == "SCHEDULE_ENDED"
        assert payload["newPrice"] == 12499.0
        assert payload["message"] == "Price reverted: Schedule ended"

    def test_pending_revert_message(self, data_store, broker, make_product):
        clock = FixedClock(datetime(2024, 12, 1))
        engine = PriceScheduleEngine(data_store, BrokerPriceNotifier(broker), clock=clock)
        product = data_store.save_product(make_product(
            price=Decimal("800.00"),
            is_on_sale=True,
            original_price_before_schedule=Decimal("1000.00"),
        ))

        engine.evaluate_and_apply(product)

        payload = broker.get_message_log(BROADCAST_PRICE_TOPIC)[0].payload
        assert payload["type"] == "PRICE_REVERTED"
        assert payload["newPrice"] == 1000.0
        assert payload["originalPrice"] == 1000.0

    def test_unscheduled_product_untouched(self, engine, broker, data_store, plain_product_id):
        before = data_store.get_product(plain_product_id)

        result = engine.evaluate_and_apply(before)

        assert result.changed is False
        assert data_store.get_product(plain_product_id).updated_at is None
        assert broker.get_message_log() == []

    def test_uses_stored_state_over_stale_copy(self, engine, broker, data_store, scheduled_product_id):
        stale = data_store.get_product(scheduled_product_id)
        engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))
        broker.clear_message_log()

        engine.evaluate_and_apply(stale)

        assert broker.get_message_log() == []

    def test_lazy_entry_point_returns_current_product(self, engine, data_store, scheduled_product_id):
        product = engine.apply_scheduled_price_change_for_schedule(
            data_store.get_product(scheduled_product_id)
        )

        assert product.price == Decimal("9999.00")
        assert product.is_on_sale is True


class TestPropagationFailures:
    """After the price is saved, downstream failures are logged, not raised."""

    def test_notifier_failure_does_not_raise(self, data_store, clock, scheduled_product_id):
        engine = PriceScheduleEngine(data_store, ExplodingNotifier(), clock=clock)

        result = engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))

        assert result.notify is True
        assert data_store.get_product(scheduled_product_id).price == Decimal("9999.00")
        # Carts are synced before notifying
        for line in data_store.find_cart_items_by_product_id(scheduled_product_id):
            assert line.price == Decimal("9999.00")

    def test_cart_sync_failure_still_broadcasts(self, data_store, broker, clock, scheduled_product_id):
        engine = PriceScheduleEngine(
            data_store,
            BrokerPriceNotifier(broker),
            cart_sync=ExplodingCartSync(data_store),
            clock=clock,
        )

        engine.evaluate_and_apply(data_store.get_product(scheduled_product_id))

        assert data_store.get_product(scheduled_product_id).price == Decimal("9999.00")
        assert len(broker.get_message_log(BROADCAST_PRICE_TOPIC)) == 1

    def test_save_failure_propagates_to_caller(self, data_dir, broker, clock, scheduled_product_id):
        store = FailingSaveStore(data_dir, failing_ids=[scheduled_product_id])
        engine = PriceScheduleEngine(store, BrokerPriceNotifier(broker), clock=clock)

        with pytest.raises(RuntimeError):
            engine.evaluate_and_apply(store.get_product(scheduled_product_id))
        assert broker.get_message_log() == []


class TestSweepAll:
    """Full pass over every scheduled product."""

    def test_sweep_report(self, engine, data_store):
        report = engine.sweep_all()

        # Products 2 and 3 carry schedules; 5 has only a scheduled price
        assert isinstance(report, SweepReport)
        assert report.evaluated == 2
        assert report.changed == 1
        assert report.notified == 1
        assert report.failed == []

    def test_partial_schedule_not_touched(self, engine, data_store, partial_schedule_product_id):
        engine.sweep_all()

        product = data_store.get_product(partial_schedule_product_id)
        assert product.price == Decimal("8499.00")
        assert product.is_on_sale is True
        assert product.original_price_before_schedule is None

    def test_empty_store(self, empty_store, broker, clock):
        engine = PriceScheduleEngine(empty_store, BrokerPriceNotifier(broker), clock=clock)

        report = engine.sweep_all()

        assert report.evaluated == 0
        assert broker.get_message_log() == []

    def test_repeated_sweeps_converge(self, engine, broker):
        engine.sweep_all()
        broker.clear_message_log()

        report = engine.sweep_all()

        assert report.changed == 0
        assert report.notified == 0
        assert broker.get_message_log() == []

    def test_one_failing_product_does_not_stop_sweep(self, tmp_path, broker, clock, make_product):
        store = FailingSaveStore(tmp_path, failing_ids=[102])
        for product_id in (101, 102, 103):
            # Seed through the parent class so the failing ID can be stored
            DataStore.save_product(store, make_product(id=product_id))
        engine = PriceScheduleEngine(store, BrokerPriceNotifier(broker), clock=clock)

        report = engine.sweep_all()

        assert report.evaluated == 3
        assert report.failed == [102]
        assert store.get_product(101).price == Decimal("800.00")
        assert store.get_product(103).price == Decimal("800.00")
        assert store.get_product(102).price == Decimal("1000.00")
        broadcast_ids = [m.payload["productId"] for m in broker.get_message_log(BROADCAST_PRICE_TOPIC)]
        assert broadcast_ids == [101, 103]

    def test_reference_scenario_end_to_end(self, tmp_path, broker, make_product):
        store = DataStore(data_dir=tmp_path)
        store.save_product(make_product())
        clock = FixedClock(datetime(2025, 1, 3, 12, 0))
        engine = PriceScheduleEngine(store, BrokerPriceNotifier(broker), clock=clock)

        engine.sweep_all()
        store.create_cart_item(user_id=9, product_id=100, quantity=1, price=Decimal("800.00"))

        clock.set(datetime(2025, 1, 8, 0, 1))
        engine.sweep_all()

        product = store.get_product(100)
        assert product.price == Decimal("1000.00")
        assert product.scheduled_price is None
        assert product.is_on_sale is False
        line = store.get_cart_item(9, 100)
        assert line.price == Decimal("1000.00")


class TestConcurrentEvaluation:
    """Overlapping evaluations of one product converge to one transition."""

    def test_parallel_lazy_reads_notify_once(self, engine, broker, data_store, scheduled_product_id):
        product = data_store.get_product(scheduled_product_id)
        start = threading.Barrier(8)

        def read():
            start.wait()
            engine.apply_scheduled_price_change_for_schedule(product)

        threads = [threading.Thread(target=read) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(broker.get_message_log(BROADCAST_PRICE_TOPIC)) == 1
        assert data_store.get_product(scheduled_product_id).price == Decimal("9999.00")
