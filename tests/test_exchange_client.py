import asyncio
from decimal import Decimal as D

import pytest
from ccxt.base.errors import ExchangeError, NetworkError
from prometheus_client import REGISTRY

from spotproxy.config.loader import Settings
from spotproxy.errors import MissingCredentials, UpstreamUnavailable
from spotproxy.exchange.client import BinanceSpotClient


class FakeExchange:
    """Stands in for ccxt's implicit API: each method name maps to a canned payload."""

    def __init__(self, responses=None, errors=None):
        self.responses = responses or {}
        self.errors = errors or {}
        self.calls = []
        self.closed = False

    def __getattr__(self, name):
        if not name.startswith(("public_", "private_")):
            raise AttributeError(name)

        async def _method(params):
            self.calls.append((name, params))
            if name in self.errors:
                raise self.errors[name]
            return self.responses.get(name)

        return _method

    async def close(self):
        self.closed = True


def signed_settings(**kw):
    return Settings(api_key="k", api_secret="s", **kw)


def run(coro):
    return asyncio.run(coro)


def test_ticker_price_parsed_as_decimal():
    ex = FakeExchange({"public_get_ticker_price": {"symbol": "BTCUSDT", "price": "65000.01000000"}})
    client = BinanceSpotClient(Settings(), exchange=ex)
    assert run(client.ticker_price("BTCUSDT")) == D("65000.01")
    assert ex.calls == [("public_get_ticker_price", {"symbol": "BTCUSDT"})]


def test_day_open_uses_latest_daily_kline():
    kline = [1700000000000, "100.5", "110", "90", "105", "1000", 1700086399999, "0", 10, "0", "0", "0"]
    ex = FakeExchange({"public_get_klines": [kline]})
    client = BinanceSpotClient(Settings(), exchange=ex)
    assert run(client.day_open("BTCUSDT")) == D("100.5")
    assert ex.calls[0][1] == {"symbol": "BTCUSDT", "interval": "1d", "limit": 1}


def test_day_open_without_klines_is_upstream_failure():
    client = BinanceSpotClient(Settings(), exchange=FakeExchange({"public_get_klines": []}))
    with pytest.raises(UpstreamUnavailable, match="No kline data"):
        run(client.day_open("BTCUSDT"))


def test_malformed_price_is_upstream_failure():
    client = BinanceSpotClient(Settings(), exchange=FakeExchange({"public_get_avgprice": {"mins": 5}}))
    with pytest.raises(UpstreamUnavailable):
        run(client.avg_price("BTCUSDT"))


def test_signed_call_without_credentials_never_hits_network():
    ex = FakeExchange({"private_get_mytrades": []})
    client = BinanceSpotClient(Settings(), exchange=ex)
    with pytest.raises(MissingCredentials, match="BINANCE_SPOT_API_KEY"):
        run(client.my_trades("BTCUSDT"))
    assert ex.calls == []


def test_my_trades_uses_configured_limit():
    ex = FakeExchange({"private_get_mytrades": [{"id": 1}]})
    client = BinanceSpotClient(signed_settings(trades_limit=500), exchange=ex)
    assert run(client.my_trades("ETHBTC")) == [{"id": 1}]
    assert ex.calls == [("private_get_mytrades", {"symbol": "ETHBTC", "limit": 500})]


@pytest.mark.parametrize("err", [NetworkError("timed out"), ExchangeError('{"code":-1121,"msg":"Invalid symbol."}')])
def test_ccxt_errors_become_upstream_unavailable(err):
    labels = {"endpoint": "ticker/price", "status": "error"}
    before = REGISTRY.get_sample_value("upstream_requests_total", labels) or 0.0
    client = BinanceSpotClient(Settings(), exchange=FakeExchange(errors={"public_get_ticker_price": err}))
    with pytest.raises(UpstreamUnavailable) as exc_info:
        run(client.ticker_price("NOPE"))
    assert exc_info.value.endpoint == "ticker/price"
    assert exc_info.value.__cause__ is err
    assert REGISTRY.get_sample_value("upstream_requests_total", labels) == before + 1


def test_close_delegates_to_exchange():
    ex = FakeExchange()
    run(BinanceSpotClient(Settings(), exchange=ex).close())
    assert ex.closed


def test_real_exchange_configured_from_settings():
    client = BinanceSpotClient(signed_settings(base_url="https://testnet.binance.vision", recv_window_ms=5000))
    try:
        ex = client.exchange
        assert ex.apiKey == "k"
        assert ex.secret == "s"
        assert ex.options["recvWindow"] == 5000
        assert ex.urls["api"]["public"] == "https://testnet.binance.vision/api/v3"
        assert ex.urls["api"]["private"] == "https://testnet.binance.vision/api/v3"
    finally:
        run(client.close())
