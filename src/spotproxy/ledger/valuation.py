from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from ..errors import InvalidInput
from .model import Position, ZERO, quantize

HUNDRED = Decimal("100")
ONE = Decimal("1")


@dataclass
class Valuation:
    pnl_value: Decimal
    pnl_percent: Decimal
    daily_value: Decimal
    daily_percent: Decimal

    def as_dict(self) -> Dict[str, float]:
        return {
            "pnlValue": quantize(self.pnl_value, 8),
            "pnlPct": quantize(self.pnl_percent, 4),
            "dailyVal": quantize(self.daily_value, 8),
            "dailyPct": quantize(self.daily_percent, 4),
        }


def value_position(position: Position, current_price: Decimal, opening_price: Decimal) -> Valuation:
    """Unrealized PnL against the average entry and change since the day open.

    A zero average entry means there is no open cost basis, so the PnL
    percent is reported as 0. A zero opening price has no such convention
    and is rejected.
    """
    if not current_price.is_finite():
        raise InvalidInput(f"non-finite current price: {current_price}")
    if not opening_price.is_finite() or opening_price == 0:
        raise InvalidInput(f"opening price must be finite and non-zero, got {opening_price}")
    qty = position.net_quantity
    avg = position.average_entry_price
    pnl_pct = ((current_price / avg) - ONE) * HUNDRED if avg != 0 else ZERO
    return Valuation(
        pnl_value=(current_price - avg) * qty,
        pnl_percent=pnl_pct,
        daily_value=(current_price - opening_price) * qty,
        daily_percent=((current_price / opening_price) - ONE) * HUNDRED,
    )


def build_summary(symbol: str, position: Position, last_price: Decimal, day_open: Decimal) -> Dict[str, Any]:
    """Flat summary object for the frontend table."""
    valuation = value_position(position, last_price, day_open)
    out: Dict[str, Any] = {"symbol": symbol}
    out.update(position.as_dict())
    out["lastPrice"] = float(last_price)
    out["dayOpen"] = float(day_open)
    out.update(valuation.as_dict())
    return out
