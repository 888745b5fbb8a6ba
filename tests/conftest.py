"""
Shared pytest fixtures for the sewing-machine store tests.

These fixtures provide consistent test data and fresh state for each test.
"""

import pytest
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from notifications.broker import MessageBroker
from notifications.fanout import BrokerPriceNotifier
from pricing.engine import PriceScheduleEngine
from shared.clock import FixedClock
from shared.data_store import DataStore
from shared.models import Product


@pytest.fixture
def data_dir() -> Path:
    """Path to the fixture data directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def data_store(data_dir: Path) -> DataStore:
    """
    Fresh DataStore instance for each test.

    Uses the real JSON fixtures; writes stay in memory, so tests don't
    interfere with each other.
    """
    return DataStore(data_dir=data_dir)


@pytest.fixture
def empty_store(tmp_path: Path) -> DataStore:
    """DataStore with no fixture files at all."""
    return DataStore(data_dir=tmp_path)


@pytest.fixture
def broker() -> MessageBroker:
    return MessageBroker()


@pytest.fixture
def clock() -> FixedClock:
    """Clock parked inside the Usha Janome schedule window."""
    return FixedClock(datetime(2025, 1, 3, 12, 0))


@pytest.fixture
def engine(data_store: DataStore, broker: MessageBroker, clock: FixedClock) -> PriceScheduleEngine:
    return PriceScheduleEngine(
        data_store=data_store,
        notifier=BrokerPriceNotifier(broker),
        clock=clock,
    )


# =============================================================================
# Product Fixtures
# =============================================================================

@pytest.fixture
def plain_product_id() -> int:
    """Singer Heavy Duty 4423 - no schedule, in user 1's cart."""
    return 1


@pytest.fixture
def scheduled_product_id() -> int:
    """
    Usha Janome Dream Stitch - 12499.00, scheduled 9999.00 from
    2025-01-01 00:00 to 2025-01-07 23:59, pre-schedule price not captured yet.
    In the carts of users 1 (at 12499.00) and 2 (at 9999.00).
    """
    return 2


@pytest.fixture
def pending_product_id() -> int:
    """Brother FS100T - schedule in June 2030, in user 3's cart."""
    return 3


@pytest.fixture
def inactive_product_id() -> int:
    """Juki HZL-355Z - hidden from the public listing."""
    return 4


@pytest.fixture
def partial_schedule_product_id() -> int:
    """Merritt Sphere - scheduled price set but no window."""
    return 5


@pytest.fixture
def make_product():
    """Factory for the product from the reference scenario (1000 -> 800 for the first week of 2025)."""
    def _make(**overrides) -> Product:
        fields = dict(
            id=100,
            title="Test Machine",
            price=Decimal("1000.00"),
            scheduled_price=Decimal("800.00"),
            price_start_date=datetime(2025, 1, 1, 0, 0),
            price_end_date=datetime(2025, 1, 7, 23, 59),
        )
        fields.update(overrides)
        return Product(**fields)
    return _make
