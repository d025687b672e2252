"""
Upstream access to the Binance Spot REST API via ccxt.

What it does:
- Initializes a ccxt async Binance client using credentials from `Settings`.
- Points the REST base at `settings.base_url` when it differs from the default.
- Calls Binance's raw endpoints through ccxt's implicit API so payloads keep
  Binance's native field names (`isBuyer`, `commissionAsset`, ...). ccxt signs
  private calls (HMAC-SHA256 over the query string with `timestamp` and
  `recvWindow`).
- Maps every ccxt failure to `UpstreamUnavailable`.

Where it is used:
- Created in the FastAPI lifespan of `spotproxy.api.app` and shared per process.
"""

import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import ccxt.async_support as ccxt_async
from ccxt.base.errors import BaseError as CcxtError

from spotproxy.config.loader import DEFAULT_BASE_URL, Settings
from spotproxy.errors import InvalidInput, MissingCredentials, UpstreamUnavailable
from spotproxy.ledger.model import to_decimal
from spotproxy.metrics.proxy import record_upstream_call

logger = logging.getLogger(__name__)


class BinanceSpotClient:
    """Thin wrapper around ccxt's raw Binance Spot endpoints."""

    def __init__(self, settings: Settings, exchange: Any = None):
        self.settings = settings
        self.exchange = exchange if exchange is not None else self._init_exchange()

    def _init_exchange(self):
        """Create and configure a ccxt async Binance instance."""
        params: Dict[str, Any] = {
            "apiKey": self.settings.api_key,
            "secret": self.settings.api_secret,
            "options": {"defaultType": "spot", "recvWindow": self.settings.recv_window_ms},
        }
        exchange = ccxt_async.binance(params)
        base = self.settings.base_url
        if base != DEFAULT_BASE_URL:
            exchange.urls["api"]["public"] = f"{base}/api/v3"
            exchange.urls["api"]["private"] = f"{base}/api/v3"
            logger.info(f"Binance REST base overridden: {base}")
        return exchange

    async def _call(self, endpoint: str, method: str, params: Optional[Dict[str, Any]] = None, signed: bool = False) -> Any:
        if signed and not self.settings.has_credentials:
            prefix = self.settings.env_prefix
            raise MissingCredentials(f"Missing {prefix}_API_KEY/{prefix}_API_SECRET env vars")
        fn = getattr(self.exchange, method)
        start = time.perf_counter()
        try:
            data = await fn(params or {})
        except CcxtError as e:
            record_upstream_call(endpoint, "error", time.perf_counter() - start)
            logger.warning(f"Upstream {endpoint} failed: {e}")
            raise UpstreamUnavailable(str(e), endpoint=endpoint) from e
        record_upstream_call(endpoint, "ok", time.perf_counter() - start)
        return data

    @staticmethod
    def _price(value: Any, field: str, endpoint: str) -> Decimal:
        try:
            return to_decimal(value, field)
        except InvalidInput as e:
            raise UpstreamUnavailable(f"Malformed {endpoint} payload: {e}", endpoint=endpoint) from e

    async def server_time(self) -> Dict[str, Any]:
        return await self._call("time", "public_get_time")

    async def avg_price(self, symbol: str) -> Decimal:
        data = await self._call("avgPrice", "public_get_avgprice", {"symbol": symbol})
        return self._price((data or {}).get("price"), "price", "avgPrice")

    async def ticker_price(self, symbol: str) -> Decimal:
        data = await self._call("ticker/price", "public_get_ticker_price", {"symbol": symbol})
        return self._price((data or {}).get("price"), "price", "ticker/price")

    async def day_open(self, symbol: str) -> Decimal:
        """Open of the latest daily kline."""
        klines = await self._call("klines", "public_get_klines", {"symbol": symbol, "interval": "1d", "limit": 1})
        if not isinstance(klines, list) or not klines:
            raise UpstreamUnavailable("No kline data", endpoint="klines")
        return self._price(klines[0][1], "open", "klines")

    async def my_trades(self, symbol: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"symbol": symbol, "limit": limit or self.settings.trades_limit}
        trades = await self._call("myTrades", "private_get_mytrades", params, signed=True)
        if not isinstance(trades, list):
            raise UpstreamUnavailable("Unexpected myTrades payload", endpoint="myTrades")
        return trades

    async def account(self) -> Dict[str, Any]:
        return await self._call("account", "private_get_account", signed=True)

    async def close(self) -> None:
        await self.exchange.close()
