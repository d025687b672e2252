from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict

from ..errors import InvalidInput

ZERO = Decimal("0")


def to_decimal(value: Any, field: str) -> Decimal:
    """Parse an exchange numeric (usually a string) into a finite Decimal."""
    if value is None or value == "":
        raise InvalidInput(f"missing {field}")
    try:
        # str() first so floats keep their shortest repr instead of binary noise
        dec = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidInput(f"invalid {field}: {value!r}") from e
    if not dec.is_finite():
        raise InvalidInput(f"non-finite {field}: {value!r}")
    return dec


def quantize(value: Decimal, places: int) -> float:
    """Round once at the presentation boundary and hand back a JSON number."""
    step = Decimal(1).scaleb(-places)
    return float(value.quantize(step, rounding=ROUND_HALF_UP))


@dataclass
class Fill:
    timestamp: int
    quantity: Decimal
    price: Decimal
    is_buy: bool
    commission_amount: Decimal = ZERO
    commission_asset: str = ""


@dataclass
class Position:
    """Weighted-average-cost state for one symbol.

    Attributes:
        net_quantity: Base-asset units still held (negative after an oversell)
        total_cost: Quote-asset cost basis of ``net_quantity``
    """

    net_quantity: Decimal = ZERO
    total_cost: Decimal = ZERO

    @property
    def average_entry_price(self) -> Decimal:
        if self.net_quantity > 0:
            return self.total_cost / self.net_quantity
        return ZERO

    def as_dict(self) -> Dict[str, float]:
        return {
            "qty": quantize(self.net_quantity, 8),
            "avgEntry": quantize(self.average_entry_price, 8),
        }
