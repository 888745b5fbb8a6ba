"""
HTTP and WebSocket surface of the sewing-machine store.

The FastAPI application exposes product reads, admin schedule endpoints,
cart and favorites endpoints, and the live price-update channels.
"""

from api.main import app

__all__ = ["app"]
