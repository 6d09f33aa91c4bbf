"""
Cart API Pydantic Models

Request bodies for the cart and checkout endpoints.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel


# ==================== CART MODELS ====================

class AddToCartRequest(BaseModel):
    product_id: Optional[str] = None  # looked up in the catalog
    product: Optional[Dict[str, Any]] = None  # snapshot supplied by the client
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    product_id: str
    quantity: int = 1  # clamped to at least 1


class ApplyVoucherRequest(BaseModel):
    discount: Optional[float] = 0


class SetCurrencyRequest(BaseModel):
    currency: Optional[str] = None


# ==================== CHECKOUT MODELS ====================

class CheckoutRequest(BaseModel):
    gateway: str
    email: str
    reference: Optional[str] = None
