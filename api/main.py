"""
FastAPI application for the sewing-machine store's pricing core.

This application provides:
1. Product reads that always reflect the live price schedule
2. Admin endpoints to attach, remove and sweep price schedules
3. Cart and favorites endpoints that snapshot current prices
4. WebSocket channels pushing price updates to the storefront

Run with:
    uv run uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, WebSocket
from pydantic import BaseModel, Field

from notifications.broker import (
    BROADCAST_PRICE_TOPIC,
    MessageBroker,
    get_message_broker,
    user_destination,
)
from notifications.fanout import BrokerPriceNotifier
from notifications.websocket_hub import WebSocketHub
from pricing.engine import PriceScheduleEngine
from pricing.scheduler import ScheduleTrigger
from services.cart import CartService
from services.catalog import CatalogService
from services.favorites import FavoriteEntry, FavoriteService
from shared.clock import Clock
from shared.config import configure_logging, get_settings
from shared.data_store import DataStore, get_data_store
from shared.errors import (
    CartItemNotFoundError,
    ProductNotFoundError,
    StoreError,
)
from shared.models import Cart, Product

configure_logging(get_settings().log_level)
logger = logging.getLogger("store_api")


# Request models
class ScheduleRequest(BaseModel):
    """Admin request to put a product on a scheduled price."""
    scheduled_price: Decimal = Field(..., ge=0)
    price_start_date: datetime
    price_end_date: datetime


class CartItemRequest(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)


class QuantityRequest(BaseModel):
    quantity: int


class FavoriteRequest(BaseModel):
    product_id: int


class SweepResult(BaseModel):
    evaluated: int
    changed: int
    notified: int
    failed: list[int]


# Module-level instances (would use proper DI in production)
_data_store: Optional[DataStore] = None
_broker: Optional[MessageBroker] = None
_engine: Optional[PriceScheduleEngine] = None
_hub: Optional[WebSocketHub] = None


def get_store() -> DataStore:
    global _data_store
    if _data_store is None:
        _data_store = get_data_store()
    return _data_store


def get_broker() -> MessageBroker:
    global _broker
    if _broker is None:
        _broker = get_message_broker()
    return _broker


def get_engine() -> PriceScheduleEngine:
    """Get the price schedule engine wired to the current store and broker."""
    global _engine
    if _engine is None:
        _engine = PriceScheduleEngine(
            data_store=get_store(),
            notifier=BrokerPriceNotifier(get_broker()),
            clock=Clock(get_settings().zone),
        )
    return _engine


def get_hub() -> WebSocketHub:
    global _hub
    if _hub is None:
        _hub = WebSocketHub(get_broker())
    return _hub


def reset_api_state(
    data_store: Optional[DataStore] = None,
    broker: Optional[MessageBroker] = None,
    clock: Optional[Clock] = None,
) -> None:
    """Reset API state (for testing)."""
    global _data_store, _broker, _engine, _hub
    _data_store = data_store
    _broker = broker
    _engine = None
    _hub = None
    if clock is not None:
        _engine = PriceScheduleEngine(
            data_store=get_store(),
            notifier=BrokerPriceNotifier(get_broker()),
            clock=clock,
        )


def get_catalog(engine: PriceScheduleEngine = Depends(get_engine)) -> CatalogService:
    return CatalogService(engine)


def get_cart_service(engine: PriceScheduleEngine = Depends(get_engine)) -> CartService:
    return CartService(engine, max_quantity=get_settings().max_cart_quantity)


def get_favorite_service(engine: PriceScheduleEngine = Depends(get_engine)) -> FavoriteService:
    return FavoriteService(engine)


def _http_error(error: StoreError) -> HTTPException:
    if isinstance(error, (ProductNotFoundError, CartItemNotFoundError)):
        return HTTPException(status_code=404, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the price schedule trigger with the app and stop it on shutdown."""
    settings = get_settings()
    trigger = None
    if settings.price_sweep_enabled:
        trigger = ScheduleTrigger(get_engine(), interval=settings.price_sweep_interval_seconds)
        trigger.start()
    logger.info(f"Store API started (timezone {settings.store_timezone})")
    yield
    if trigger is not None:
        trigger.stop()
    logger.info("Shutting down")


app = FastAPI(
    title="Sewing Machine Store API",
    description="""
    Catalog, cart and favorites for the sewing-machine store, with
    time-windowed promotional prices that switch on and off automatically.

    ## Live price updates

    - `/ws/price-updates` - every price change, for all clients
    - `/ws/users/{user_id}` - changes to items in that user's cart
    """,
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "sewing-machine-store",
        "websocket_clients": get_hub().active_connections,
    }


# =============================================================================
# Products
# =============================================================================

@app.get("/products", response_model=list[Product], tags=["Products"])
def list_products(
    include_inactive: bool = False,
    catalog: CatalogService = Depends(get_catalog),
):
    """List products with their current scheduled prices applied."""
    return catalog.list_products(include_inactive=include_inactive)


@app.get("/products/{product_id}", response_model=Product, tags=["Products"])
def get_product(product_id: int, catalog: CatalogService = Depends(get_catalog)):
    try:
        return catalog.get_product(product_id)
    except StoreError as e:
        raise _http_error(e)


# =============================================================================
# Admin: price schedules
# =============================================================================

@app.put("/admin/products/{product_id}/schedule", response_model=Product, tags=["Admin"])
def set_price_schedule(
    product_id: int,
    request: ScheduleRequest,
    catalog: CatalogService = Depends(get_catalog),
):
    """Attach a scheduled price; the product is evaluated right away."""
    try:
        return catalog.set_price_schedule(
            product_id,
            request.scheduled_price,
            request.price_start_date,
            request.price_end_date,
        )
    except StoreError as e:
        raise _http_error(e)


@app.delete("/admin/products/{product_id}/schedule", response_model=Product, tags=["Admin"])
def clear_price_schedule(product_id: int, catalog: CatalogService = Depends(get_catalog)):
    try:
        return catalog.clear_price_schedule(product_id)
    except StoreError as e:
        raise _http_error(e)


@app.post("/admin/price-schedule/sweep", response_model=SweepResult, tags=["Admin"])
def run_sweep(engine: PriceScheduleEngine = Depends(get_engine)):
    """Run one sweep now instead of waiting for the next tick."""
    report = engine.sweep_all()
    return SweepResult(
        evaluated=report.evaluated,
        changed=report.changed,
        notified=report.notified,
        failed=report.failed,
    )


# =============================================================================
# Cart
# =============================================================================

@app.get("/cart/{user_id}", response_model=Cart, tags=["Cart"])
def get_cart(user_id: int, carts: CartService = Depends(get_cart_service)):
    """Open a cart; every line is re-priced first."""
    return carts.get_cart(user_id)


@app.post("/cart/{user_id}/items", response_model=Cart, tags=["Cart"])
def add_cart_item(
    user_id: int,
    request: CartItemRequest,
    carts: CartService = Depends(get_cart_service),
):
    try:
        return carts.add_item(user_id, request.product_id, request.quantity)
    except StoreError as e:
        raise _http_error(e)


@app.put("/cart/{user_id}/items/{product_id}", response_model=Cart, tags=["Cart"])
def update_cart_item(
    user_id: int,
    product_id: int,
    request: QuantityRequest,
    carts: CartService = Depends(get_cart_service),
):
    try:
        return carts.update_quantity(user_id, product_id, request.quantity)
    except StoreError as e:
        raise _http_error(e)


@app.delete("/cart/{user_id}/items/{product_id}", response_model=Cart, tags=["Cart"])
def remove_cart_item(
    user_id: int,
    product_id: int,
    carts: CartService = Depends(get_cart_service),
):
    try:
        return carts.remove_item(user_id, product_id)
    except StoreError as e:
        raise _http_error(e)


# =============================================================================
# Favorites
# =============================================================================

@app.get("/favorites/{user_id}", response_model=list[FavoriteEntry], tags=["Favorites"])
def list_favorites(user_id: int, favorites: FavoriteService = Depends(get_favorite_service)):
    return favorites.list_favorites(user_id)


@app.post("/favorites/{user_id}", response_model=FavoriteEntry, tags=["Favorites"])
def add_favorite(
    user_id: int,
    request: FavoriteRequest,
    favorites: FavoriteService = Depends(get_favorite_service),
):
    try:
        return favorites.add_favorite(user_id, request.product_id)
    except StoreError as e:
        raise _http_error(e)


@app.delete("/favorites/{user_id}/{product_id}", tags=["Favorites"])
def remove_favorite(
    user_id: int,
    product_id: int,
    favorites: FavoriteService = Depends(get_favorite_service),
):
    if not favorites.remove_favorite(user_id, product_id):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return {"removed": True}


# =============================================================================
# WebSocket price updates
# =============================================================================

@app.websocket("/ws/price-updates")
async def price_updates(websocket: WebSocket):
    """Every price update, broadcast to all clients."""
    await get_hub().serve(websocket, BROADCAST_PRICE_TOPIC)


@app.websocket("/ws/users/{user_id}")
async def user_price_updates(websocket: WebSocket, user_id: int):
    """Price updates for products in one user's cart."""
    await get_hub().serve(websocket, user_destination(user_id))
