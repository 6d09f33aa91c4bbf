"""
Common Error Constants and Exceptions

Centralized error messages to avoid string duplication.
"""

# Cart errors
ERROR_PRODUCT_ID_REQUIRED = "Product must have a non-empty id"
ERROR_PRODUCT_PRICE_REQUIRED = "Product must have a price"
ERROR_PRODUCT_PRICE_INVALID = "Product price must be a non-negative number"
ERROR_PRODUCT_NOT_FOUND = "Product not found"

# Checkout errors
ERROR_CART_EMPTY = "Cart is empty"
ERROR_TOTAL_NOT_PAYABLE = "Cart total must be greater than zero"
ERROR_GATEWAY_UNKNOWN = "Unknown payment gateway"
ERROR_PAYMENT_FAILED = "Payment failed"

# Exchange rate errors
ERROR_RATES_UNAVAILABLE = "Exchange rates unavailable"


class StorefrontError(Exception):
    """Base class for storefront errors."""


class CartValidationError(StorefrontError, ValueError):
    """Raised when a cart mutation is given invalid input. The cart is left unchanged."""


class CheckoutError(StorefrontError):
    """Raised when the cart cannot be sent to a payment gateway."""


class ExchangeRateError(StorefrontError):
    """Raised when the exchange rate source cannot supply a rate table."""
