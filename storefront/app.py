"""
Storefront Cart - FastAPI Application

Composition root: builds one cart engine, its rate refresher, the catalog
repository and the checkout orchestrator, and exposes them to the routes.
The refresher runs for the lifetime of the app and is cancelled on shutdown.
"""
from contextlib import asynccontextmanager
from typing import Mapping, Optional

from fastapi import FastAPI

from storefront import config
from storefront.cart import CartEngine, build_cart_store
from storefront.logging import get_logger
from storefront.payments import CheckoutOrchestrator, PaymentGatewayClient
from storefront.routers import cart_router
from storefront.services.exchange_rates import ExchangeRateClient, RateRefresher
from storefront.services.repositories import ProductRepository

logger = get_logger(__name__)


def _default_catalog() -> Optional[ProductRepository]:
    if not config.SUPABASE_URL or not config.SUPABASE_ANON_KEY:
        logger.info("Supabase not configured; catalog lookups disabled")
        return None
    from storefront.db import get_supabase_sync
    return ProductRepository(get_supabase_sync())


def create_app(
    engine: Optional[CartEngine] = None,
    refresher: Optional[RateRefresher] = None,
    catalog: Optional[ProductRepository] = None,
    gateways: Optional[Mapping[str, PaymentGatewayClient]] = None,
    start_refresher: bool = True,
) -> FastAPI:
    """
    Build the application.

    Args:
        engine: Cart engine (default: engine over the configured store)
        refresher: Rate refresher (default: live exchangerate-api.com client)
        catalog: Product repository (default: Supabase if configured)
        gateways: Payment gateway clients by name; checkout is disabled without them
        start_refresher: Run the periodic refresh during the app lifespan
    """
    engine = engine or CartEngine(build_cart_store())
    refresher = refresher or RateRefresher(engine, ExchangeRateClient())
    if catalog is None:
        catalog = _default_catalog()
    checkout = CheckoutOrchestrator(engine, gateways) if gateways else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine.initialize()
        if start_refresher:
            refresher.start()
        try:
            yield
        finally:
            await refresher.stop()

    app = FastAPI(title="Storefront Cart", lifespan=lifespan)
    app.state.cart_engine = engine
    app.state.rate_refresher = refresher
    app.state.catalog = catalog
    app.state.checkout = checkout

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "currency": engine.display_currency}

    app.include_router(cart_router)
    return app
