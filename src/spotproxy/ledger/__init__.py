"""Ledger package.

Public API:
- aggregate_fills: fold raw fills into a weighted-average-cost Position.
- value_position / build_summary: unrealized PnL and daily change for a Position.
"""

from .model import Fill, Position  # re-export
from .ledger import aggregate_fills, detect_quote_asset, fill_from_trade, fills_from_trades
from .valuation import Valuation, build_summary, value_position
