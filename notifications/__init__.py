"""
Push notifications for price updates.

Publishers talk to the broker through a ``PriceNotifier``; the WebSocket hub
relays broker destinations to connected clients.
"""

from notifications.broker import Message, MessageBroker, get_message_broker, reset_message_broker
from notifications.fanout import BrokerPriceNotifier, PriceNotifier

__all__ = [
    "Message",
    "MessageBroker",
    "get_message_broker",
    "reset_message_broker",
    "BrokerPriceNotifier",
    "PriceNotifier",
]
