"""Cart models with Decimal-based pricing and the persisted snapshot schema."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from storefront.errors import (
    CartValidationError,
    ERROR_PRODUCT_ID_REQUIRED,
    ERROR_PRODUCT_PRICE_INVALID,
    ERROR_PRODUCT_PRICE_REQUIRED,
)
from storefront.services.currency import normalize_currency
from storefront.services.money import parse_decimal, to_json_number

# Version of the persisted snapshot written by CartState.to_dict().
# Snapshots without a "version" key are the legacy (version 0) shape.
SCHEMA_VERSION = 1

_HUNDRED = Decimal("100")


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the value of the first key present in data (None if none are)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError("lastRateUpdate must be an ISO-8601 string or null")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ProductSnapshot:
    """Product attributes captured when the product was added to the cart."""
    id: str
    name: str
    base_price: Decimal
    base_currency: str
    free_delivery: bool = False
    discount_percentage: Decimal = Decimal("0")  # display-only, 0-100
    stock_quantity: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default_currency: str) -> "ProductSnapshot":
        """
        Build a snapshot from a catalog row or request body.

        Accepts both the catalog's snake_case fields and the camelCase fields
        of the persisted format. Missing optional attributes get defaults.

        Raises:
            CartValidationError: If the id is missing/empty or the price is
                missing, non-numeric or negative
        """
        if not isinstance(data, Mapping):
            raise CartValidationError(ERROR_PRODUCT_ID_REQUIRED)

        raw_id = data.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
            raise CartValidationError(ERROR_PRODUCT_ID_REQUIRED)
        product_id = str(raw_id).strip()
        if not product_id:
            raise CartValidationError(ERROR_PRODUCT_ID_REQUIRED)

        raw_price = _first(data, "basePrice", "base_price", "price")
        if raw_price is None:
            raise CartValidationError(ERROR_PRODUCT_PRICE_REQUIRED)
        price = parse_decimal(raw_price)
        if price is None or price < 0:
            raise CartValidationError(ERROR_PRODUCT_PRICE_INVALID)

        discount = parse_decimal(
            _first(data, "discountPercentage", "discount_percentage")
        ) or Decimal("0")
        discount = min(max(discount, Decimal("0")), _HUNDRED)

        currency = normalize_currency(
            _first(data, "baseCurrency", "base_currency", "currency")
        ) or default_currency

        return cls(
            id=product_id,
            name=str(data.get("name") or ""),
            base_price=price,
            base_currency=currency,
            free_delivery=bool(_first(data, "freeDelivery", "free_delivery") or False),
            discount_percentage=discount,
            stock_quantity=max(
                0, _to_int(_first(data, "stockQuantity", "stock_quantity", "stock_count"))
            ),
        )

    def to_dict(self) -> dict:
        """Convert to the persisted (camelCase) representation."""
        return {
            "id": self.id,
            "name": self.name,
            "basePrice": to_json_number(self.base_price),
            "baseCurrency": self.base_currency,
            "freeDelivery": self.free_delivery,
            "discountPercentage": to_json_number(self.discount_percentage),
            "stockQuantity": self.stock_quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProductSnapshot":
        """Create from the persisted representation (strict: id and basePrice required)."""
        price = parse_decimal(data["basePrice"])
        if price is None or price < 0:
            raise ValueError(f"Invalid basePrice: {data['basePrice']!r}")
        product_id = data["id"]
        if not isinstance(product_id, str) or not product_id:
            raise ValueError("Persisted product id must be a non-empty string")
        currency = normalize_currency(data["baseCurrency"])
        if currency is None:
            raise ValueError(f"Invalid baseCurrency: {data['baseCurrency']!r}")
        return cls(
            id=product_id,
            name=str(data.get("name") or ""),
            base_price=price,
            base_currency=currency,
            free_delivery=bool(data.get("freeDelivery", False)),
            discount_percentage=parse_decimal(data.get("discountPercentage", 0)) or Decimal("0"),
            stock_quantity=max(0, _to_int(data.get("stockQuantity", 0))),
        )


@dataclass
class LineItem:
    """One product-and-quantity entry in the cart."""
    product: ProductSnapshot
    quantity: int = 1

    def __post_init__(self):
        self.quantity = max(1, self.quantity)

    @property
    def product_id(self) -> str:
        return self.product.id

    def to_dict(self) -> dict:
        return {"product": self.product.to_dict(), "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        quantity = data["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise TypeError(f"Invalid quantity: {quantity!r}")
        return cls(product=ProductSnapshot.from_dict(data["product"]), quantity=quantity)


@dataclass
class CartState:
    """Cart aggregate root. Mutated only by CartEngine."""
    display_currency: str
    items: List[LineItem] = field(default_factory=list)
    voucher_discount: Decimal = Decimal("0")
    exchange_rates: Dict[str, Decimal] = field(default_factory=dict)
    last_rate_refresh: Optional[datetime] = None

    def find(self, product_id: str) -> Optional[LineItem]:
        """Line item for product_id, or None."""
        return next((item for item in self.items if item.product_id == product_id), None)

    def to_dict(self) -> dict:
        """Convert to the persisted snapshot (JSON-serializable)."""
        return {
            "version": SCHEMA_VERSION,
            "items": [item.to_dict() for item in self.items],
            "voucherDiscount": to_json_number(self.voucher_discount),
            "currency": self.display_currency,
            "exchangeRates": {
                code: to_json_number(rate) for code, rate in self.exchange_rates.items()
            },
            "lastRateUpdate": (
                self.last_rate_refresh.isoformat() if self.last_rate_refresh else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartState":
        """
        Create from a persisted snapshot of any supported version.

        Raises:
            ValueError, TypeError, KeyError: If the snapshot is malformed
        """
        data = migrate_snapshot(data)

        currency = normalize_currency(data["currency"])
        if currency is None:
            raise ValueError(f"Invalid currency: {data['currency']!r}")

        voucher = parse_decimal(data.get("voucherDiscount", 0))
        if voucher is None:
            raise ValueError(f"Invalid voucherDiscount: {data.get('voucherDiscount')!r}")

        raw_rates = data.get("exchangeRates") or {}
        if not isinstance(raw_rates, dict):
            raise TypeError("exchangeRates must be an object")
        rates: Dict[str, Decimal] = {}
        for code, raw_rate in raw_rates.items():
            normalized = normalize_currency(code)
            rate = parse_decimal(raw_rate)
            if normalized is None or rate is None or rate <= 0:
                raise ValueError(f"Invalid rate for {code!r}: {raw_rate!r}")
            rates[normalized] = rate

        raw_items = data.get("items") or []
        if not isinstance(raw_items, list):
            raise TypeError("items must be an array")

        # Merge duplicate ids so that one line item per product holds on load
        items: List[LineItem] = []
        by_id: Dict[str, LineItem] = {}
        for raw_item in raw_items:
            item = LineItem.from_dict(raw_item)
            existing = by_id.get(item.product_id)
            if existing:
                existing.quantity += item.quantity
                continue
            by_id[item.product_id] = item
            items.append(item)

        return cls(
            display_currency=currency,
            items=items,
            voucher_discount=max(voucher, Decimal("0")),
            exchange_rates=rates,
            last_rate_refresh=_parse_timestamp(data.get("lastRateUpdate")),
        )


def migrate_snapshot(data: Any) -> dict:
    """
    Upgrade a persisted snapshot to SCHEMA_VERSION.

    Version 0 is the unversioned shape written by the original web
    storefront: products carry their full catalog row plus basePrice /
    baseCurrency, with snake_case discount_percentage and stock_quantity.

    Raises:
        TypeError: If data is not an object
        ValueError: If the version is unknown
    """
    if not isinstance(data, dict):
        raise TypeError("Cart snapshot must be an object")

    version = data.get("version", 0)
    if version == SCHEMA_VERSION:
        return data
    if version != 0:
        raise ValueError(f"Unsupported cart snapshot version: {version!r}")

    items = []
    for raw_item in data.get("items") or []:
        product = raw_item["product"]
        items.append({
            "product": {
                "id": str(product["id"]),
                "name": product.get("name", ""),
                "basePrice": _first(product, "basePrice", "price"),
                "baseCurrency": _first(product, "baseCurrency", "currency") or "NGN",
                "freeDelivery": bool(product.get("freeDelivery", False)),
                "discountPercentage": product.get("discount_percentage", 0),
                "stockQuantity": product.get("stock_quantity", 0),
            },
            "quantity": raw_item["quantity"],
        })

    return {
        "version": SCHEMA_VERSION,
        "items": items,
        "voucherDiscount": data.get("voucherDiscount", 0),
        "currency": data.get("currency") or "NGN",
        "exchangeRates": data.get("exchangeRates") or {},
        "lastRateUpdate": data.get("lastRateUpdate"),
    }
