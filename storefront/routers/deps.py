"""
Shared Dependencies for Routers

The composition root (create_app) puts the cart engine and its
collaborators on app.state; routes receive them through Depends so tests
can build isolated apps around their own engine.
"""
from typing import Optional, TYPE_CHECKING

from fastapi import HTTPException, Request

if TYPE_CHECKING:
    from storefront.cart import CartEngine
    from storefront.payments import CheckoutOrchestrator
    from storefront.services.exchange_rates import RateRefresher
    from storefront.services.repositories import ProductRepository


def get_cart_engine(request: Request) -> "CartEngine":
    return request.app.state.cart_engine


def get_rate_refresher(request: Request) -> "RateRefresher":
    refresher: Optional["RateRefresher"] = request.app.state.rate_refresher
    if refresher is None:
        raise HTTPException(status_code=503, detail="Exchange rate refresh is not configured")
    return refresher


def get_catalog(request: Request) -> Optional["ProductRepository"]:
    """Catalog may be absent: snapshot-only adds do not need it."""
    return request.app.state.catalog


def get_checkout(request: Request) -> "CheckoutOrchestrator":
    orchestrator: Optional["CheckoutOrchestrator"] = request.app.state.checkout
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="No payment gateway is configured")
    return orchestrator
