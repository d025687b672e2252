"""spotproxy: Binance Spot REST proxy with weighted-average-cost position tracking."""

__version__ = "0.1.0"
