"""
Scheduled price management.

- Evaluator: decides a product's price and badge for a point in time
- Engine: applies evaluations, syncs carts and announces changes
- Cart sync: rewrites cart price snapshots for a product
- Scheduler: periodic trigger for sweeps
"""

from pricing.evaluator import EvaluationResult, evaluate
from pricing.engine import PriceScheduleEngine, SweepReport
from pricing.cart_sync import CartPriceSynchronizer
from pricing.scheduler import ScheduleTrigger

__all__ = [
    "EvaluationResult",
    "evaluate",
    "PriceScheduleEngine",
    "SweepReport",
    "CartPriceSynchronizer",
    "ScheduleTrigger",
]
