from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List

from .config.loader import Settings
from .ledger import Position, aggregate_fills, build_summary, detect_quote_asset, fills_from_trades
from .ledger.model import quantize, to_decimal
from .errors import InvalidInput, UpstreamUnavailable
from .metrics.proxy import get_fills_aggregated_total, get_summary_requests_total

logger = logging.getLogger(__name__)


class PositionService:
    """Joins upstream data with the ledger for one request.

    Holds no state between requests; every call recomputes from the full
    trade history the exchange returns.
    """

    def __init__(self, client: Any, settings: Settings):
        self.client = client
        self.settings = settings

    def quote_for(self, symbol: str) -> str:
        return detect_quote_asset(
            symbol,
            quote_assets=self.settings.quote_assets,
            default=self.settings.default_quote,
            overrides=self.settings.quote_overrides,
        )

    def _position_from_trades(self, symbol: str, trades: List[Dict[str, Any]]) -> Position:
        fills = fills_from_trades(trades)
        pos = aggregate_fills(fills, self.quote_for(symbol))
        get_fills_aggregated_total().labels(symbol).inc(len(fills))
        logger.info(f"{symbol}: {len(fills)} fills -> qty={pos.net_quantity} avg={pos.average_entry_price}")
        if pos.net_quantity < 0:
            logger.warning(
                f"{symbol}: net quantity negative after {len(fills)} fills ({pos.net_quantity}); "
                "trade history does not cover current holdings"
            )
        return pos

    async def position(self, symbol: str) -> Position:
        trades = await self.client.my_trades(symbol)
        return self._position_from_trades(symbol, trades)

    async def summary(self, symbol: str) -> Dict[str, Any]:
        # A failure in any fetch propagates and aborts the whole summary.
        last_price, day_open, trades = await asyncio.gather(
            self.client.ticker_price(symbol),
            self.client.day_open(symbol),
            self.client.my_trades(symbol),
        )
        pos = self._position_from_trades(symbol, trades)
        get_summary_requests_total().labels(symbol).inc()
        return build_summary(symbol, pos, last_price, day_open)

    async def balances(self) -> List[Dict[str, Any]]:
        """Non-zero balances with free + locked totals."""
        acc = await self.client.account()
        out: List[Dict[str, Any]] = []
        for b in (acc or {}).get("balances") or []:
            try:
                free = to_decimal(b.get("free") or "0", "free")
                locked = to_decimal(b.get("locked") or "0", "locked")
            except InvalidInput as e:
                raise UpstreamUnavailable(f"Malformed account payload: {e}", endpoint="account") from e
            total = free + locked
            if total <= Decimal("0"):
                continue
            out.append({
                "asset": b.get("asset"),
                "free": float(free),
                "locked": float(locked),
                "total": quantize(total, 8),
            })
        return out
