"""
Tests for the exchange rate client and the periodic refresher
"""
import asyncio
from decimal import Decimal

import httpx
import pytest

from storefront.cart import CartEngine, MemoryCartStore
from storefront.errors import ExchangeRateError
from storefront.services.currency import FALLBACK_RATES
from storefront.services.exchange_rates import ExchangeRateClient, RateRefresher


def _client(handler) -> ExchangeRateClient:
    return ExchangeRateClient(
        base_url="https://rates.test/v4/latest/",
        transport=httpx.MockTransport(handler),
    )


class _FailingStore(MemoryCartStore):
    def save(self, snapshot):
        raise OSError("disk full")


class _FakeRateClient:
    """Stands in for ExchangeRateClient; fails while `failures` > 0."""

    def __init__(self, rates=None, failures=0):
        self.rates = rates or {"USD": Decimal("0.0007")}
        self.failures = failures
        self.calls = 0
        self.closed = False

    async def fetch_rates(self, base_currency):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ExchangeRateError("rate source unreachable")
        return dict(self.rates)

    async def aclose(self):
        self.closed = True


class TestExchangeRateClient:
    """Tests for ExchangeRateClient.fetch_rates"""

    @pytest.mark.asyncio
    async def test_fetch_rates(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(
                200,
                json={"base": "NGN", "rates": {"USD": 0.00067, "eur": 0.00062, "NGN": 1, "XXX": 0}},
            )

        client = _client(handler)
        rates = await client.fetch_rates("NGN")
        await client.aclose()

        assert seen == ["https://rates.test/v4/latest/NGN"]
        assert rates == {
            "USD": Decimal("0.00067"),
            "EUR": Decimal("0.00062"),
            "NGN": Decimal("1"),
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="upstream error"),
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200, json={"base": "NGN"}),
            httpx.Response(200, json={"rates": {}}),
            httpx.Response(200, json={"rates": {"USD": "n/a"}}),
            httpx.Response(200, json=[1, 2]),
        ],
    )
    async def test_bad_responses_raise(self, response):
        client = _client(lambda request: response)

        with pytest.raises(ExchangeRateError):
            await client.fetch_rates("NGN")

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExchangeRateError):
            await _client(handler).fetch_rates("NGN")

    @pytest.mark.asyncio
    async def test_invalid_url_raises(self):
        def handler(request):
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        with pytest.raises(ExchangeRateError):
            await _client(handler).fetch_rates("NGN")


class TestRateRefresher:
    """Tests for RateRefresher"""

    @pytest.mark.asyncio
    async def test_refresh_applies_live_rates(self, engine, fixed_now):
        refresher = RateRefresher(engine, _FakeRateClient({"USD": Decimal("0.0007")}))

        assert await refresher.refresh_once() is True

        assert engine.exchange_rates == {"USD": Decimal("0.0007")}
        assert engine.last_rate_refresh == fixed_now
        assert engine.using_fallback_rates is False

    @pytest.mark.asyncio
    async def test_refresh_failure_applies_fallback(self, engine, fixed_now):
        refresher = RateRefresher(engine, _FakeRateClient(failures=1))

        assert await refresher.refresh_once() is False

        assert engine.exchange_rates == FALLBACK_RATES
        assert engine.last_rate_refresh == fixed_now
        assert engine.using_fallback_rates is True

    @pytest.mark.asyncio
    async def test_fallback_then_recovery(self, engine):
        refresher = RateRefresher(engine, _FakeRateClient({"USD": Decimal("0.0007")}, failures=1))

        await refresher.refresh_once()
        assert engine.using_fallback_rates is True

        await refresher.refresh_once()
        assert engine.using_fallback_rates is False
        assert engine.exchange_rates == {"USD": Decimal("0.0007")}

    @pytest.mark.asyncio
    async def test_fallback_pricing_is_usable(self, engine, sample_product):
        engine.add_item(sample_product)
        engine.set_display_currency("USD")

        await RateRefresher(engine, _FakeRateClient(failures=1)).refresh_once()

        assert engine.rate() == Decimal("0.00067")
        assert engine.total() == (Decimal("100") + Decimal("2000")) * Decimal("0.00067")

    @pytest.mark.asyncio
    async def test_loop_keeps_running_after_failures(self, engine):
        client = _FakeRateClient(failures=2)
        refresher = RateRefresher(engine, client, interval=0)

        refresher.start()
        assert refresher.running is True
        for _ in range(100):
            if client.calls >= 4:
                break
            await asyncio.sleep(0)
        await refresher.stop()

        assert client.calls >= 4
        assert engine.using_fallback_rates is False
        assert refresher.running is False
        assert client.closed is True

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, engine):
        refresher = RateRefresher(engine, _FakeRateClient(), interval=3600)

        refresher.start()
        task = refresher._task
        refresher.start()

        assert refresher._task is task
        await refresher.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, engine):
        client = _FakeRateClient()
        refresher = RateRefresher(engine, client)

        await refresher.stop()

        assert client.calls == 0
        assert client.closed is True

    @pytest.mark.asyncio
    async def test_loop_survives_store_write_errors(self):
        """Test that a failing cart store does not end the refresh timer."""
        engine = CartEngine(_FailingStore(), base_currency="NGN")
        engine.initialize()
        client = _FakeRateClient(failures=1000)
        refresher = RateRefresher(engine, client, interval=0)

        refresher.start()
        for _ in range(100):
            if client.calls >= 3:
                break
            await asyncio.sleep(0)

        assert client.calls >= 3
        assert refresher.running is True
        await refresher.stop()
        assert refresher.running is False
