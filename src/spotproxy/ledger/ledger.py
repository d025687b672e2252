from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..errors import InvalidInput
from .model import Fill, Position, ZERO, to_decimal

# Checked in order; first suffix match wins.
DEFAULT_QUOTE_ASSETS: Sequence[str] = (
    "USDT", "FDUSD", "BUSD", "USDC", "TUSD",
    "BTC", "ETH", "BNB",
    "TRY", "EUR", "BRL", "AUD", "GBP", "RUB",
)
DEFAULT_QUOTE = "USDT"


def detect_quote_asset(
    symbol: str,
    quote_assets: Sequence[str] = DEFAULT_QUOTE_ASSETS,
    default: str = DEFAULT_QUOTE,
    overrides: Optional[Mapping[str, str]] = None,
) -> str:
    """Guess the quote asset of a pair like ``ETHBTC`` from its suffix.

    An explicit entry in ``overrides`` always wins. Otherwise this is a suffix
    heuristic, not an instrument-metadata lookup: an unlisted quote asset
    silently falls back to ``default``.
    """
    sym = symbol.upper()
    if overrides and sym in overrides:
        return overrides[sym]
    for quote in quote_assets:
        if sym.endswith(quote):
            return quote
    return default


def _parse_time(value: Any) -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise InvalidInput(f"invalid time: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"invalid time: {value!r}") from e


def fill_from_trade(row: Mapping[str, Any]) -> Fill:
    """Build a Fill from one raw ``/api/v3/myTrades`` row."""
    timestamp = _parse_time(row.get("time"))
    quantity = to_decimal(row.get("qty"), "qty")
    price = to_decimal(row.get("price"), "price")
    commission = to_decimal(row.get("commission") or "0", "commission")
    if quantity <= 0 or price <= 0:
        raise InvalidInput(f"fill quantity and price must be positive (qty={quantity}, price={price})")
    if commission < 0:
        raise InvalidInput(f"negative commission: {commission}")
    return Fill(
        timestamp=timestamp,
        quantity=quantity,
        price=price,
        is_buy=bool(row.get("isBuyer")),
        commission_amount=commission,
        commission_asset=str(row.get("commissionAsset") or ""),
    )


def fills_from_trades(rows: Iterable[Mapping[str, Any]]) -> List[Fill]:
    return [fill_from_trade(r) for r in rows]


def _check_fill(f: Fill) -> None:
    for name in ("quantity", "price"):
        val = getattr(f, name)
        if val is None:
            raise InvalidInput(f"fill missing {name}")
        if not val.is_finite():
            raise InvalidInput(f"fill has non-finite {name}: {val}")


def aggregate_fills(fills: Iterable[Fill], quote_asset: str) -> Position:
    """Fold fills into a weighted-average-cost Position.

    Buys add quantity and cost (plus the fee when it was paid in the quote
    asset). Sells remove quantity at the running average cost, so the sale
    price and the sell fee never touch the remaining basis. Selling more than
    is held drives quantity and cost negative; no clamping. No side effects.
    """
    ordered = sorted(fills, key=lambda f: f.timestamp)  # stable: equal ts keep input order
    pos = Position()
    for f in ordered:
        _check_fill(f)
        if f.is_buy:
            pos.net_quantity += f.quantity
            pos.total_cost += f.quantity * f.price
            if f.commission_asset == quote_asset:
                pos.total_cost += f.commission_amount
        else:
            avg = pos.total_cost / pos.net_quantity if pos.net_quantity > 0 else ZERO
            pos.net_quantity -= f.quantity
            pos.total_cost -= avg * f.quantity
    return pos
