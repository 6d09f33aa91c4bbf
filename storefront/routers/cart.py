"""
Cart Router

Cart and checkout endpoints. Every cart response carries the full cart
summary in the display currency, recomputed after the mutation.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.cart import CartEngine
from storefront.errors import (
    CartValidationError,
    CheckoutError,
    ERROR_PAYMENT_FAILED,
    ERROR_PRODUCT_NOT_FOUND,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.payments import CheckoutOrchestrator
from storefront.services.exchange_rates import RateRefresher
from storefront.services.repositories import ProductRepository
from .deps import get_cart_engine, get_catalog, get_checkout, get_rate_refresher
from .models import (
    AddToCartRequest,
    ApplyVoucherRequest,
    CheckoutRequest,
    SetCurrencyRequest,
    UpdateCartItemRequest,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["cart"])


@router.get("/cart")
async def get_cart(engine: CartEngine = Depends(get_cart_engine)):
    """Get the cart with derived totals."""
    return engine.summary()


@router.post("/cart/add")
async def add_to_cart(
    request: AddToCartRequest,
    engine: CartEngine = Depends(get_cart_engine),
    catalog: Optional[ProductRepository] = Depends(get_catalog),
):
    """Add a client-supplied product snapshot, or a product looked up by id."""
    if request.product is not None:
        product = request.product
    elif request.product_id:
        if catalog is None:
            raise HTTPException(status_code=503, detail="Product catalog is not configured")
        try:
            product = await catalog.get_by_id(request.product_id)
        except CartValidationError as e:
            logger.warning(f"Catalog product {sanitize_id_for_logging(request.product_id)} is not sellable: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        if product is None:
            raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    else:
        raise HTTPException(status_code=400, detail="product_id or product is required")

    try:
        engine.add_item(product, request.quantity)
    except CartValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return engine.summary()


@router.patch("/cart/item")
async def update_cart_item(request: UpdateCartItemRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Update cart item quantity (values below 1 become 1)."""
    engine.update_quantity(request.product_id, request.quantity)
    return engine.summary()


@router.delete("/cart/item/{product_id}")
async def remove_cart_item(product_id: str, engine: CartEngine = Depends(get_cart_engine)):
    """Remove an item; unknown ids are ignored."""
    engine.remove_item(product_id)
    return engine.summary()


@router.post("/cart/voucher")
async def apply_voucher(request: ApplyVoucherRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Set the flat voucher discount (display currency)."""
    engine.apply_voucher(request.discount)
    return engine.summary()


@router.post("/cart/currency")
async def set_currency(request: SetCurrencyRequest, engine: CartEngine = Depends(get_cart_engine)):
    """Select the display currency (unknown codes fall back to the base currency)."""
    engine.set_display_currency(request.currency)
    return engine.summary()


@router.post("/cart/clear")
async def clear_cart(engine: CartEngine = Depends(get_cart_engine)):
    """Empty the cart; the currency preference is kept."""
    engine.clear()
    return engine.summary()


@router.post("/cart/rates/refresh")
async def refresh_rates(
    engine: CartEngine = Depends(get_cart_engine),
    refresher: RateRefresher = Depends(get_rate_refresher),
):
    """Run one rate refresh now (falls back to static rates if the source is down)."""
    await refresher.refresh_once()
    return engine.summary()


@router.post("/checkout")
async def checkout(
    request: CheckoutRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_checkout),
):
    """Charge the cart total; the cart is cleared only when the gateway succeeds."""
    try:
        result = await orchestrator.checkout(request.gateway, request.email, request.reference)
    except CheckoutError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not result.success:
        raise HTTPException(status_code=402, detail=result.message or ERROR_PAYMENT_FAILED)

    return {
        "success": True,
        "reference": result.reference,
        "gateway": result.gateway,
        "cart": orchestrator.engine.summary(),
    }
