"""Payments: gateway constants and the checkout orchestrator."""
from .checkout import (
    ChargeRequest,
    CheckoutOrchestrator,
    PaymentGatewayClient,
    PaymentResult,
    gateway_amount,
)
from .constants import AmountUnit, PaymentGateway, normalize_gateway

__all__ = [
    "AmountUnit",
    "ChargeRequest",
    "CheckoutOrchestrator",
    "PaymentGateway",
    "PaymentGatewayClient",
    "PaymentResult",
    "gateway_amount",
    "normalize_gateway",
]
