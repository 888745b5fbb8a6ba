"""
Price update fan-out.

The schedule engine only knows the ``PriceNotifier`` interface: broadcast a
price update to everyone, or send one to a single user. How it travels is
up to the implementation. ``BrokerPriceNotifier`` publishes to the
in-process broker, which the WebSocket hub relays to connected clients.

Notification is best effort. Both methods swallow transport errors after
logging them; a missed update is corrected the next time the product is
evaluated.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from notifications.broker import (
    BROADCAST_PRICE_TOPIC,
    MessageBroker,
    get_message_broker,
    user_destination,
)
from shared.models import PriceUpdateMessage

logger = logging.getLogger("price_notifier")


class PriceNotifier(ABC):
    """Port the engine uses to announce price changes."""

    @abstractmethod
    def broadcast(self, message: PriceUpdateMessage) -> None:
        """Send to every connected client. Must not raise."""

    @abstractmethod
    def send_to_user(self, user_id, message: PriceUpdateMessage) -> None:
        """Send to one user's private channel. Must not raise."""


class BrokerPriceNotifier(PriceNotifier):
    """Publishes price updates to the broadcast topic and per-user queues."""

    def __init__(self, broker: Optional[MessageBroker] = None):
        self.broker = broker or get_message_broker()

    def broadcast(self, message: PriceUpdateMessage) -> None:
        self._publish(BROADCAST_PRICE_TOPIC, message)

    def send_to_user(self, user_id, message: PriceUpdateMessage) -> None:
        self._publish(user_destination(user_id), message)

    def _publish(self, destination: str, message: PriceUpdateMessage) -> None:
        try:
            delivered = self.broker.publish(destination, message.to_wire())
            logger.info(
                f"[{message.type}] product {message.product_id} -> {destination} "
                f"({delivered} subscriber(s))"
            )
        except Exception as e:
            logger.error(f"Failed to publish price update to {destination}: {e}")
