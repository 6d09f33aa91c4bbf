"""
Checkout Orchestrator

Reads the cart total once, hands it to a payment gateway client and
clears the cart when the gateway reports success. The gateway call itself
is opaque: each gateway client implements PaymentGatewayClient.
"""
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol, Union

from storefront.errors import (
    CheckoutError,
    ERROR_CART_EMPTY,
    ERROR_GATEWAY_UNKNOWN,
    ERROR_TOTAL_NOT_PAYABLE,
)
from storefront.logging import get_logger
from storefront.services.money import round_money, to_minor_units
from .constants import GATEWAY_AMOUNT_UNITS, AmountUnit, normalize_gateway

if TYPE_CHECKING:
    from storefront.cart import CartEngine

logger = get_logger(__name__)


@dataclass
class ChargeRequest:
    """What a gateway client receives."""
    amount: Union[int, Decimal]  # minor units (int) or major units (Decimal), per gateway
    currency: str
    reference: str
    email: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PaymentResult:
    """Gateway callback outcome."""
    success: bool
    reference: str
    gateway: str = ""
    message: str = ""


class PaymentGatewayClient(Protocol):
    """Opaque external payment call."""

    async def charge(self, request: ChargeRequest) -> PaymentResult:
        ...


def gateway_amount(total: Decimal, gateway: str) -> Union[int, Decimal]:
    """Express total in the unit the gateway expects (kobo for Paystack, naira for Flutterwave)."""
    if GATEWAY_AMOUNT_UNITS[gateway] is AmountUnit.MINOR:
        return to_minor_units(total)
    return round_money(total)


class CheckoutOrchestrator:
    """
    Usage:
        orchestrator = CheckoutOrchestrator(engine, {"paystack": PaystackClient()})
        result = await orchestrator.checkout("paystack", email="ada@example.com")
    """

    def __init__(self, engine: "CartEngine", gateways: Mapping[str, PaymentGatewayClient]):
        self.engine = engine
        self.gateways: Dict[str, PaymentGatewayClient] = {}
        for name, client in gateways.items():
            canonical = normalize_gateway(name)
            if canonical is None:
                raise ValueError(f"{ERROR_GATEWAY_UNKNOWN}: {name}")
            self.gateways[canonical] = client

    async def checkout(self, gateway: str, email: str, reference: Optional[str] = None) -> PaymentResult:
        """
        Charge the cart total through gateway; clear the cart on success.

        Raises:
            CheckoutError: Unknown/unconfigured gateway, empty cart, or a
                total that is not positive (the cart is left unchanged)
        """
        canonical = normalize_gateway(gateway)
        client = self.gateways.get(canonical) if canonical else None
        if client is None:
            raise CheckoutError(f"{ERROR_GATEWAY_UNKNOWN}: {gateway}")

        if not self.engine.items:
            raise CheckoutError(ERROR_CART_EMPTY)

        total = self.engine.total()
        if total <= 0:
            raise CheckoutError(ERROR_TOTAL_NOT_PAYABLE)

        request = ChargeRequest(
            amount=gateway_amount(total, canonical),
            currency=self.engine.display_currency,
            reference=reference or str(int(time.time() * 1000)),
            email=email,
            metadata={
                "products": ", ".join(item.product.name for item in self.engine.items),
                "item_count": self.engine.item_count(),
            },
        )

        result = await client.charge(request)
        result.gateway = result.gateway or canonical

        if result.success:
            self.engine.clear()
            logger.info(f"Checkout {request.reference} paid via {canonical}; cart cleared")
        else:
            logger.warning(f"Checkout {request.reference} via {canonical} failed: {result.message}")
        return result
