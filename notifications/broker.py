"""
In-memory topic broker for push notifications.

Publishers send a payload to a named destination (``/topic/price-updates``,
``/user/42/queue/price-updates``); every handler subscribed to that
destination receives it. The WebSocket hub subscribes one handler per open
connection. In a multi-node deployment this would be replaced by a real
message broker (Redis pub/sub, RabbitMQ STOMP relay, ...).

Design decisions:
- Synchronous delivery to in-process handlers
- Destination-based subscriptions, plus "*" for every destination
- A failing handler is logged and skipped; publishing never raises
- Messages are not persisted beyond an optional debug log
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional
from uuid import uuid4

logger = logging.getLogger("message_broker")

BROADCAST_PRICE_TOPIC = "/topic/price-updates"
USER_PRICE_QUEUE = "/queue/price-updates"


def user_destination(user_id, queue: str = USER_PRICE_QUEUE) -> str:
    """Destination of a user's private queue, e.g. ``/user/7/queue/price-updates``."""
    return f"/user/{user_id}{queue}"


@dataclass
class Message:
    """
    A payload delivered to one destination.

    Attributes:
        destination: Topic or user queue the message was sent to
        payload: JSON-ready message body
        message_id: Unique identifier for this delivery
        timestamp: When the message was published
    """
    destination: str
    payload: dict[str, Any]
    message_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __str__(self) -> str:
        return f"Message({self.destination}, id={self.message_id[:8]})"


MessageHandler = Callable[[Message], None]


class MessageBroker:
    """
    Simple in-memory broker implementing destination-based pub/sub.

    Example usage:
        broker = MessageBroker()
        broker.subscribe("/topic/price-updates", lambda m: print(m.payload))
        broker.publish("/topic/price-updates", {"productId": 2, "type": "PRICE_CHANGED"})
    """

    def __init__(self):
        self._subscribers: dict[str, list[MessageHandler]] = defaultdict(list)
        self._lock = threading.Lock()

        # Optional: track all messages for debugging
        self._message_log: list[Message] = []
        self._log_messages: bool = True

    def subscribe(self, destination: str, handler: MessageHandler) -> None:
        """Subscribe a handler to one destination."""
        with self._lock:
            self._subscribers[destination].append(handler)
        logger.debug(f"Subscribed handler to '{destination}'")

    def subscribe_all(self, handler: MessageHandler) -> None:
        """Subscribe a handler to every destination (logging, auditing)."""
        with self._lock:
            self._subscribers["*"].append(handler)
        logger.debug("Subscribed handler to ALL destinations")

    def unsubscribe(self, destination: str, handler: MessageHandler) -> bool:
        """
        Remove a handler from a destination.

        Returns:
            True if the handler was found and removed, False otherwise
        """
        with self._lock:
            try:
                self._subscribers[destination].remove(handler)
            except ValueError:
                return False
        logger.debug(f"Unsubscribed handler from '{destination}'")
        return True

    def publish(self, destination: str, payload: dict[str, Any]) -> int:
        """
        Deliver a payload to every subscriber of a destination.

        Returns:
            Number of handlers that were called
        """
        message = Message(destination=destination, payload=payload)

        with self._lock:
            if self._log_messages:
                self._message_log.append(message)
            handlers = list(self._subscribers.get(destination, []))
            handlers += self._subscribers.get("*", [])

        logger.debug(f"Publishing: {message}")

        for handler in handlers:
            try:
                handler(message)
            except Exception as e:
                logger.error(f"Handler raised exception for {message}: {e}")

        return len(handlers)

    def get_subscriber_count(self, destination: str) -> int:
        with self._lock:
            return len(self._subscribers.get(destination, []))

    def get_message_log(self, destination: Optional[str] = None) -> list[Message]:
        """
        Get the log of published messages, optionally for one destination.

        Useful for debugging and testing.
        """
        with self._lock:
            return [
                m for m in self._message_log
                if destination is None or m.destination == destination
            ]

    def clear_message_log(self) -> None:
        with self._lock:
            self._message_log.clear()

    def set_logging(self, enabled: bool) -> None:
        """Enable or disable the message log."""
        self._log_messages = enabled


# Module-level singleton for convenience
_default_broker: Optional[MessageBroker] = None


def get_message_broker() -> MessageBroker:
    """Get the default broker singleton."""
    global _default_broker
    if _default_broker is None:
        _default_broker = MessageBroker()
    return _default_broker


def reset_message_broker() -> MessageBroker:
    """Reset the default broker (useful for testing)."""
    global _default_broker
    _default_broker = MessageBroker()
    return _default_broker
