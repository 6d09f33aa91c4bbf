"""
Exchange Rate Refresh

Fetches live rates for the cart's base currency from exchangerate-api.com
and hands them to the cart engine on a fixed interval. When a fetch fails
for any reason the static fallback table is applied instead, so the
engine's refresh timestamp always advances and pricing never reads an
empty rate table. There is no backoff and no retry: the next scheduled
tick is the retry.
"""
import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Optional

import httpx

from storefront import config
from storefront.errors import ExchangeRateError, ERROR_RATES_UNAVAILABLE
from storefront.logging import get_logger
from storefront.services.currency import FALLBACK_RATES
from storefront.services.money import parse_decimal

if TYPE_CHECKING:
    from storefront.cart import CartEngine

logger = get_logger(__name__)


class ExchangeRateClient:
    """HTTP client for the rate-quoting service."""

    def __init__(
        self,
        base_url: str = config.EXCHANGE_API_URL,
        timeout: float = config.RATE_FETCH_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def fetch_rates(self, base_currency: str) -> Dict[str, Decimal]:
        """
        Fetch the latest rates relative to base_currency.

        Returns:
            Mapping of currency code to rate (1 base = rate target)

        Raises:
            ExchangeRateError: On network error, non-2xx status, or a body
                without a usable "rates" object
        """
        url = f"{self.base_url}/{base_currency}"
        client = await self._get_http_client()

        try:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ExchangeRateError(f"{ERROR_RATES_UNAVAILABLE}: {e}") from e
        except ValueError as e:
            raise ExchangeRateError(f"{ERROR_RATES_UNAVAILABLE}: invalid JSON body") from e

        raw_rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(raw_rates, dict) or not raw_rates:
            raise ExchangeRateError(f"{ERROR_RATES_UNAVAILABLE}: no rates in response")

        rates: Dict[str, Decimal] = {}
        for code, raw_rate in raw_rates.items():
            rate = parse_decimal(raw_rate)
            if rate is not None and rate > 0:
                rates[str(code).upper()] = rate

        if not rates:
            raise ExchangeRateError(f"{ERROR_RATES_UNAVAILABLE}: no usable rates in response")
        return rates


class RateRefresher:
    """
    Periodic rate refresh for one cart engine.

    Usage:
        refresher = RateRefresher(engine, ExchangeRateClient())
        refresher.start()        # refreshes now, then every interval seconds
        ...
        await refresher.stop()   # cancels the timer
    """

    def __init__(
        self,
        engine: "CartEngine",
        client: Optional[ExchangeRateClient] = None,
        interval: float = config.RATE_REFRESH_INTERVAL,
        fallback_rates: Optional[Dict[str, Decimal]] = None,
    ):
        self.engine = engine
        self.client = client or ExchangeRateClient()
        self.interval = interval
        self.fallback_rates = dict(fallback_rates or FALLBACK_RATES)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_once(self) -> bool:
        """
        Fetch rates and apply them; apply the fallback table on failure.

        Returns:
            True if live rates were applied, False if the fallback was used
        """
        try:
            rates = await self.client.fetch_rates(self.engine.base_currency)
        except ExchangeRateError as e:
            logger.warning(f"Exchange rate fetch failed, using fallback rates: {e}")
            self.engine.refresh_exchange_rates(self.fallback_rates, fallback=True)
            return False

        self.engine.refresh_exchange_rates(rates)
        logger.info(f"Exchange rates refreshed: {len(rates)} currencies")
        return True

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh_once()
            except Exception as e:
                # The next tick runs on schedule regardless
                logger.error(f"Exchange rate refresh tick failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start the refresh loop on the running event loop (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="exchange-rate-refresh")

    async def stop(self) -> None:
        """Cancel the refresh loop and close the HTTP client."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.client.aclose()
