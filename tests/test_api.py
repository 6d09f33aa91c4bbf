"""
Tests for the cart HTTP API
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.cart import CartEngine, MemoryCartStore
from storefront.cart.models import ProductSnapshot
from storefront.errors import CartValidationError, ExchangeRateError
from storefront.payments import PaymentResult
from storefront.services.exchange_rates import RateRefresher


class _FakeRateClient:
    def __init__(self, rates=None):
        self.rates = rates

    async def fetch_rates(self, base_currency):
        if self.rates is None:
            raise ExchangeRateError("rate source unreachable")
        return dict(self.rates)

    async def aclose(self):
        pass


class _FakeCatalog:
    def __init__(self, products):
        self.products = products

    async def get_by_id(self, product_id):
        product = self.products.get(product_id)
        if isinstance(product, Exception):
            raise product
        return product


class _FakeGateway:
    def __init__(self, success=True):
        self.success = success
        self.requests = []

    async def charge(self, request):
        self.requests.append(request)
        return PaymentResult(success=self.success, reference=request.reference, message="Card declined")


@pytest.fixture
def cart_engine(fixed_clock):
    return CartEngine(MemoryCartStore(), base_currency="NGN", base_delivery_fee=Decimal("2000"), clock=fixed_clock)


@pytest.fixture
def catalog():
    return _FakeCatalog({
        "p9": ProductSnapshot(
            id="p9", name="Kente Scarf", base_price=Decimal("3000"), base_currency="NGN", stock_quantity=2
        ),
        "broken": CartValidationError("Product must have a price"),
    })


def _make_client(engine, catalog=None, rates=None, gateways=None):
    refresher = RateRefresher(engine, _FakeRateClient(rates))
    app = create_app(
        engine=engine,
        refresher=refresher,
        catalog=catalog,
        gateways=gateways,
        start_refresher=False,
    )
    return TestClient(app)


class TestCartEndpoints:
    """Tests for /api/cart*"""

    def test_health(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "currency": "NGN"}

    def test_empty_cart(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            data = client.get("/api/cart").json()

        assert data["items"] == []
        assert data["item_count"] == 0
        assert data["subtotal"] == 0
        assert data["delivery_fee"] == 2000
        assert data["total"] == 2000
        assert data["total_formatted"] == "₦2,000.00"

    def test_add_snapshot(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            response = client.post(
                "/api/cart/add",
                json={"product": {"id": "p1", "name": "Ankara Dress", "price": 100}, "quantity": 2},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["item_count"] == 2
        assert data["items"][0]["product_id"] == "p1"
        assert data["items"][0]["line_total"] == 200
        assert data["total"] == 2200

    def test_add_from_catalog(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            data = client.post("/api/cart/add", json={"product_id": "p9"}).json()

        assert data["items"][0]["name"] == "Kente Scarf"
        assert data["items"][0]["stock_quantity"] == 2
        assert data["subtotal"] == 3000

    def test_add_unknown_catalog_product(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            response = client.post("/api/cart/add", json={"product_id": "nope"})

        assert response.status_code == 404
        assert cart_engine.items == []

    def test_add_unpriced_catalog_product(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            response = client.post("/api/cart/add", json={"product_id": "broken"})

        assert response.status_code == 400

    def test_add_invalid_snapshot(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            no_price = client.post("/api/cart/add", json={"product": {"id": "p1"}})
            no_id = client.post("/api/cart/add", json={"product": {"id": "", "price": 5}})
            nothing = client.post("/api/cart/add", json={})

        assert no_price.status_code == 400
        assert no_id.status_code == 400
        assert nothing.status_code == 400
        assert cart_engine.items == []

    def test_add_without_catalog(self, cart_engine, monkeypatch):
        monkeypatch.setattr("storefront.app._default_catalog", lambda: None)

        with _make_client(cart_engine) as client:
            response = client.post("/api/cart/add", json={"product_id": "p9"})

        assert response.status_code == 503

    def test_update_and_remove(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            client.post("/api/cart/add", json={"product_id": "p9"})
            updated = client.patch("/api/cart/item", json={"product_id": "p9", "quantity": 0}).json()
            assert updated["item_count"] == 1

            updated = client.patch("/api/cart/item", json={"product_id": "p9", "quantity": 3}).json()
            assert updated["item_count"] == 3

            removed = client.delete("/api/cart/item/p9").json()
            assert removed["items"] == []

            ignored = client.delete("/api/cart/item/unknown")
            assert ignored.status_code == 200

    def test_voucher_and_clear(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            client.post("/api/cart/add", json={"product_id": "p9"})
            data = client.post("/api/cart/voucher", json={"discount": 500}).json()
            assert data["voucher_discount"] == 500
            assert data["total"] == 4500

            data = client.post("/api/cart/voucher", json={"discount": -10}).json()
            assert data["voucher_discount"] == 0

            data = client.post("/api/cart/clear").json()

        assert data["items"] == []
        assert data["voucher_discount"] == 0

    def test_currency_and_rate_refresh(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog, rates={"USD": Decimal("0.0007")}) as client:
            client.post("/api/cart/add", json={"product_id": "p9"})
            client.post("/api/cart/currency", json={"currency": "usd"})
            data = client.post("/api/cart/rates/refresh").json()

        assert data["currency"] == "USD"
        assert data["exchange_rate"] == pytest.approx(0.0007)
        assert data["total"] == pytest.approx(3.5)
        assert data["using_fallback_rates"] is False
        assert data["last_rate_refresh"] == "2025-01-01T12:00:00+00:00"

    def test_rate_refresh_falls_back(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog, rates=None) as client:
            data = client.post("/api/cart/rates/refresh").json()

        assert data["using_fallback_rates"] is True
        assert cart_engine.exchange_rates["USD"] == Decimal("0.00067")

    def test_unknown_currency_falls_back_to_base(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            data = client.post("/api/cart/currency", json={"currency": "XYZ"}).json()

        assert data["currency"] == "NGN"

    def test_cart_survives_app_restart(self, fixed_clock, catalog):
        store = MemoryCartStore()
        first = CartEngine(store, clock=fixed_clock)
        with _make_client(first, catalog) as client:
            client.post("/api/cart/add", json={"product_id": "p9", "quantity": 2})

        second = CartEngine(store, clock=fixed_clock)
        with _make_client(second, catalog) as client:
            data = client.get("/api/cart").json()

        assert data["item_count"] == 2


class TestCheckoutEndpoint:
    """Tests for /api/checkout"""

    def test_checkout_success(self, cart_engine, catalog):
        gateway = _FakeGateway()
        with _make_client(cart_engine, catalog, gateways={"paystack": gateway}) as client:
            client.post("/api/cart/add", json={"product_id": "p9"})
            response = client.post(
                "/api/checkout",
                json={"gateway": "paystack", "email": "ada@example.com", "reference": "ord-1"},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["reference"] == "ord-1"
        assert data["cart"]["items"] == []
        assert gateway.requests[0].amount == 500000

    def test_checkout_declined(self, cart_engine, catalog):
        gateway = _FakeGateway(success=False)
        with _make_client(cart_engine, catalog, gateways={"paystack": gateway}) as client:
            client.post("/api/cart/add", json={"product_id": "p9"})
            response = client.post("/api/checkout", json={"gateway": "paystack", "email": "ada@example.com"})

        assert response.status_code == 402
        assert response.json()["detail"] == "Card declined"
        assert cart_engine.item_count() == 1

    def test_checkout_empty_cart(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog, gateways={"paystack": _FakeGateway()}) as client:
            response = client.post("/api/checkout", json={"gateway": "paystack", "email": "ada@example.com"})

        assert response.status_code == 400

    def test_checkout_without_gateways(self, cart_engine, catalog):
        with _make_client(cart_engine, catalog) as client:
            response = client.post("/api/checkout", json={"gateway": "paystack", "email": "ada@example.com"})

        assert response.status_code == 503
