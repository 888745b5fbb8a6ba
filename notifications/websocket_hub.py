"""
Bridge between the message broker and WebSocket clients.

Each open WebSocket subscribes to exactly one broker destination. Broker
handlers may run on any thread (the sweep thread, a request worker), so
they only hand the payload to the connection's event loop; a per-connection
task does the actual sending. Publishers never wait on a slow client.
"""

import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect

from notifications.broker import Message, MessageBroker, get_message_broker

logger = logging.getLogger("websocket_hub")

# Per-connection backlog; a client this far behind starts losing updates
MAX_PENDING_MESSAGES = 100


class WebSocketHub:
    """Relays broker messages to connected WebSocket clients."""

    def __init__(self, broker: Optional[MessageBroker] = None):
        self.broker = broker or get_message_broker()
        self.active_connections = 0

    async def serve(self, websocket: WebSocket, destination: str) -> None:
        """
        Stream every message published to ``destination`` until the client leaves.

        The subscription is in place before the handshake completes, so a
        client sees everything published after ``connect`` returns.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue(maxsize=MAX_PENDING_MESSAGES)

        def relay(message: Message) -> None:
            loop.call_soon_threadsafe(_offer, queue, message)

        self.broker.subscribe(destination, relay)
        await websocket.accept()
        self.active_connections += 1
        logger.info(f"Client connected to {destination}")

        sender = asyncio.create_task(_pump(websocket, queue))
        try:
            while True:
                # Clients don't send anything meaningful; this just waits for close
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info(f"Client disconnected from {destination}")
        finally:
            self.broker.unsubscribe(destination, relay)
            self.active_connections -= 1
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender


def _offer(queue: asyncio.Queue, message: Message) -> None:
    try:
        queue.put_nowait(message.payload)
    except asyncio.QueueFull:
        logger.warning(f"Dropping {message}: client backlog full")


async def _pump(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        payload = await queue.get()
        try:
            await websocket.send_json(payload)
        except Exception as e:
            logger.error(f"Failed to push message to client: {e}")
            return
