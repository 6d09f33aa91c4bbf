"""Payment constants, enums, and aliases."""
from enum import Enum


class PaymentGateway(str, Enum):
    """Supported payment gateways."""
    PAYSTACK = "paystack"
    FLUTTERWAVE = "flutterwave"


class AmountUnit(str, Enum):
    """How a gateway expects the charge amount."""
    MINOR = "minor"  # kobo / cents, integer
    MAJOR = "major"  # naira / dollars, 2 decimal places


GATEWAY_AMOUNT_UNITS: dict[str, AmountUnit] = {
    PaymentGateway.PAYSTACK.value: AmountUnit.MINOR,
    PaymentGateway.FLUTTERWAVE.value: AmountUnit.MAJOR,
}

# Gateway name aliases (input -> canonical)
GATEWAY_ALIASES: dict[str, str] = {
    "paystack": PaymentGateway.PAYSTACK.value,
    "pay_stack": PaymentGateway.PAYSTACK.value,
    "flutterwave": PaymentGateway.FLUTTERWAVE.value,
    "flutter_wave": PaymentGateway.FLUTTERWAVE.value,
    "flutter-wave": PaymentGateway.FLUTTERWAVE.value,
    "rave": PaymentGateway.FLUTTERWAVE.value,
}


def normalize_gateway(gateway: str | None) -> str | None:
    """Canonical gateway name, or None if unknown."""
    if not gateway:
        return None
    return GATEWAY_ALIASES.get(gateway.strip().lower())
