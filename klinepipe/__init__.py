"""Bounded fan-out kline collection pipeline."""

__version__ = "1.0.0"
