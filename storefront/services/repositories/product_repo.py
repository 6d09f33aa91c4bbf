"""Product Repository - Catalog lookups that produce cart snapshots."""
from decimal import Decimal
from typing import Any, Dict, Optional

from storefront import config
from storefront.cart.models import ProductSnapshot
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.money import parse_decimal
from .base import BaseRepository

logger = get_logger(__name__)

PRODUCT_COLUMNS = "id,name,price,discount_price,free_delivery,currency,stock_quantity"


class ProductRepository(BaseRepository):
    """Read-only access to the products table."""

    async def get_by_id(self, product_id: str) -> Optional[ProductSnapshot]:
        """
        Get a product as a cart snapshot.

        The snapshot price is the discounted price when one is set, which is
        what the storefront charges at checkout.
        """
        result = self.client.table("products").select(PRODUCT_COLUMNS).eq("id", product_id).limit(1).execute()

        if not result.data:
            logger.info(f"Product {sanitize_id_for_logging(product_id)} not found")
            return None

        return self.to_snapshot(result.data[0])

    @staticmethod
    def to_snapshot(row: Dict[str, Any], base_currency: str = config.BASE_CURRENCY) -> ProductSnapshot:
        """Map a products row to a ProductSnapshot (raises CartValidationError for unpriced rows)."""
        data = dict(row)
        price = parse_decimal(data.get("price"))
        discount_price = parse_decimal(data.get("discount_price"))
        if discount_price is not None and price:
            data["discount_percentage"] = ((price - discount_price) / price * 100).quantize(Decimal("1"))
            data["price"] = discount_price
        return ProductSnapshot.from_mapping(data, base_currency)
