"""Cart engine: sole owner and mutator of the cart state."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Union

from storefront import config
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.currency import SUPPORTED_CURRENCIES, normalize_currency
from storefront.services.money import (
    format_money,
    parse_decimal,
    to_decimal,
    to_float,
)
from .models import CartState, LineItem, ProductSnapshot
from .storage import CartStore

logger = get_logger(__name__)

_ZERO = Decimal("0")
_ONE = Decimal("1")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartEngine:
    """
    Owns the cart state and keeps the persisted store in sync with it.

    Every mutation writes the full snapshot to the store before returning.
    Derived values (subtotal, delivery fee, total) are recomputed from the
    current state on every call and are never cached.

    Only add_item() raises (CartValidationError). Every other operation
    clamps or ignores out-of-range input so the presentation layer never
    has to handle a cart failure.

    Usage:
        engine = CartEngine(FileCartStore(path))
        engine.initialize()
        engine.add_item({"id": "p1", "name": "Ankara Dress", "price": 15000})
        engine.total()
    """

    def __init__(
        self,
        store: CartStore,
        base_currency: str = config.BASE_CURRENCY,
        base_delivery_fee: Union[Decimal, int, str] = config.BASE_DELIVERY_FEE,
        default_currency: Optional[str] = config.DEFAULT_DISPLAY_CURRENCY,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.base_currency = normalize_currency(base_currency) or "NGN"
        self.base_delivery_fee = to_decimal(base_delivery_fee)
        self.default_currency = normalize_currency(default_currency) or self.base_currency
        self._clock = clock or _utcnow

        self.state = self._default_state()
        self.restore_failed = False
        self.using_fallback_rates = False

    # ==================== LIFECYCLE ====================

    def _default_state(self) -> CartState:
        return CartState(display_currency=self.default_currency)

    def initialize(self) -> CartState:
        """
        Load the cart from the store, or start empty.

        Malformed snapshots are discarded (restore_failed is set); this
        method never raises for bad stored data.
        """
        self.restore_failed = False
        snapshot = self.store.load()

        if snapshot is None:
            self.state = self._default_state()
            return self.state

        try:
            self.state = CartState.from_dict(snapshot)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.warning(f"Discarding malformed cart snapshot: {e!r}")
            self.state = self._default_state()
            self.restore_failed = True
            return self.state

        logger.info(
            f"Cart restored: {len(self.state.items)} line items, currency {self.state.display_currency}"
        )
        return self.state

    def _persist(self) -> None:
        self.store.save(self.state.to_dict())

    # ==================== MUTATIONS ====================

    def add_item(self, product: Union[ProductSnapshot, Mapping[str, Any]], quantity: int = 1) -> LineItem:
        """
        Add a product, or increase its quantity if it is already in the cart.

        The product is stored as a snapshot: adding an already-present product
        only changes its quantity, never its stored price.

        Args:
            product: ProductSnapshot or mapping with at least id and price
            quantity: Units to add (clamped to at least 1)

        Returns:
            The affected line item

        Raises:
            CartValidationError: If the product has no id or no valid price
        """
        if not isinstance(product, ProductSnapshot):
            product = ProductSnapshot.from_mapping(product, self.base_currency)
        quantity = self._clamp_quantity(quantity)

        existing = self.state.find(product.id)
        if existing:
            existing.quantity += quantity
            item = existing
        else:
            item = LineItem(product=product, quantity=quantity)
            self.state.items.append(item)

        self._persist()
        logger.debug(f"Added {quantity} x {sanitize_id_for_logging(product.id)}")
        return item

    def remove_item(self, product_id: str) -> None:
        """Remove a line item. Unknown ids are ignored."""
        before = len(self.state.items)
        self.state.items = [item for item in self.state.items if item.product_id != product_id]
        if len(self.state.items) == before:
            logger.debug(f"remove_item: {sanitize_id_for_logging(product_id)} not in cart")
        self._persist()

    def update_quantity(self, product_id: str, quantity: Any) -> None:
        """Set a line item's quantity (clamped to at least 1). Unknown ids are ignored."""
        item = self.state.find(product_id)
        if item is None:
            return
        item.quantity = self._clamp_quantity(quantity)
        self._persist()

    def apply_voucher(self, discount: Any) -> None:
        """Replace the voucher discount (display currency). Missing or negative values become 0."""
        amount = parse_decimal(discount)
        self.state.voucher_discount = amount if amount is not None and amount > 0 else _ZERO
        self._persist()

    def clear(self) -> None:
        """Empty the cart. Display currency and exchange rates are kept."""
        self.state.items = []
        self.state.voucher_discount = _ZERO
        self._persist()

    def set_display_currency(self, code: Optional[str]) -> str:
        """
        Select the display currency.

        Falls back to the base currency when code is empty or is neither a
        supported currency nor present in the current rate table.

        Returns:
            The currency actually selected
        """
        normalized = normalize_currency(code)
        if normalized is None or (
            normalized not in SUPPORTED_CURRENCIES and normalized not in self.state.exchange_rates
        ):
            if code:
                logger.info(f"Unrecognized currency {sanitize_id_for_logging(code)}, using {self.base_currency}")
            normalized = self.base_currency

        self.state.display_currency = normalized
        self._persist()
        return normalized

    def refresh_exchange_rates(self, rates: Mapping[str, Any], fallback: bool = False) -> None:
        """
        Replace the rate table wholesale and stamp the refresh time.

        Args:
            rates: Mapping of currency code to rate (1 base unit = rate target units).
                Entries that are not positive numbers are dropped.
            fallback: True when rates is the static fallback table
        """
        table: Dict[str, Decimal] = {}
        for code, raw_rate in (rates or {}).items():
            normalized = normalize_currency(code)
            rate = parse_decimal(raw_rate)
            if normalized is None or rate is None or rate <= 0:
                logger.warning(f"Dropping invalid exchange rate {code!r}: {raw_rate!r}")
                continue
            table[normalized] = rate

        self.state.exchange_rates = table
        self.state.last_rate_refresh = self._clock()
        self.using_fallback_rates = fallback
        self._persist()

    @staticmethod
    def _clamp_quantity(quantity: Any) -> int:
        if isinstance(quantity, bool):
            return 1
        try:
            return max(1, int(quantity))
        except (TypeError, ValueError, OverflowError):
            return 1

    # ==================== DERIVED VALUES ====================

    def rate(self) -> Decimal:
        """Conversion factor from base to display currency (1 if same or unknown)."""
        currency = self.state.display_currency
        if currency == self.base_currency:
            return _ONE
        rate = self.state.exchange_rates.get(currency)
        if not rate:
            return _ONE
        return rate

    def _subtotal_at(self, rate: Decimal) -> Decimal:
        return sum(
            (item.product.base_price * rate * item.quantity for item in self.state.items),
            _ZERO,
        )

    def _delivery_fee_at(self, rate: Decimal) -> Decimal:
        if any(item.product.free_delivery for item in self.state.items):
            return _ZERO
        return self.base_delivery_fee * rate

    def _total_of(self, subtotal: Decimal, delivery: Decimal) -> Decimal:
        # Not clamped: an oversized voucher makes the total negative
        return subtotal - self.state.voucher_discount + delivery

    def subtotal(self) -> Decimal:
        """Sum of converted unit price times quantity, in the display currency."""
        return self._subtotal_at(self.rate())

    def delivery_fee(self) -> Decimal:
        """Zero if any item ships free (whole order), else the base fee converted."""
        return self._delivery_fee_at(self.rate())

    def total(self) -> Decimal:
        """subtotal - voucher + delivery, priced at one rate."""
        rate = self.rate()
        return self._total_of(self._subtotal_at(rate), self._delivery_fee_at(rate))

    def item_count(self) -> int:
        """Total number of units in the cart."""
        return sum(item.quantity for item in self.state.items)

    @property
    def items(self):
        return list(self.state.items)

    @property
    def display_currency(self) -> str:
        return self.state.display_currency

    @property
    def voucher_discount(self) -> Decimal:
        return self.state.voucher_discount

    @property
    def exchange_rates(self) -> Dict[str, Decimal]:
        return dict(self.state.exchange_rates)

    @property
    def last_rate_refresh(self) -> Optional[datetime]:
        return self.state.last_rate_refresh

    def summary(self) -> dict:
        """
        Snapshot of the cart for presentation.

        All amounts are in the display currency; floats for JSON, plus
        pre-formatted strings.
        """
        currency = self.state.display_currency
        # One rate read prices every figure in the summary
        rate = self.rate()
        subtotal = self._subtotal_at(rate)
        delivery = self._delivery_fee_at(rate)
        total = self._total_of(subtotal, delivery)

        items = []
        for item in self.state.items:
            unit_price = item.product.base_price * rate
            line_total = unit_price * item.quantity
            items.append({
                "product_id": item.product_id,
                "name": item.product.name,
                "quantity": item.quantity,
                "free_delivery": item.product.free_delivery,
                "discount_percentage": to_float(item.product.discount_percentage),
                "stock_quantity": item.product.stock_quantity,
                "unit_price": to_float(unit_price),
                "line_total": to_float(line_total),
                "unit_price_formatted": format_money(unit_price, currency),
                "line_total_formatted": format_money(line_total, currency),
            })

        return {
            "items": items,
            "item_count": self.item_count(),
            "currency": currency,
            "base_currency": self.base_currency,
            "exchange_rate": to_float(rate),
            "subtotal": to_float(subtotal),
            "delivery_fee": to_float(delivery),
            "free_delivery": delivery == 0 and bool(self.state.items),
            "voucher_discount": to_float(self.state.voucher_discount),
            "total": to_float(total),
            "subtotal_formatted": format_money(subtotal, currency),
            "delivery_fee_formatted": format_money(delivery, currency),
            "total_formatted": format_money(total, currency),
            "last_rate_refresh": (
                self.state.last_rate_refresh.isoformat() if self.state.last_rate_refresh else None
            ),
            "using_fallback_rates": self.using_fallback_rates,
            "restore_failed": self.restore_failed,
        }
