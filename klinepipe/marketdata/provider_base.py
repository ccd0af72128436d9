"""Market data provider abstraction."""
from typing import Protocol, List, Dict, Any


class MarketDataProvider(Protocol):
    """Protocol for market data providers."""

    async def fetch_exchange_info(self) -> List[Dict[str, Any]]:
        """
        Fetch instrument metadata for every listed symbol.

        Returns:
            List of raw symbol dicts with at least the keys
            symbol, quoteAsset, status and (for derivatives) contractType,
            in provider order.
        """
        ...

    async def fetch_klines(
        self,
        symbol: str,
        timeframe: str,
        limit: int,
    ) -> List[List[Any]]:
        """
        Fetch the most recent candlestick series for a symbol and interval.

        Args:
            symbol: Instrument name (e.g., 'BTCUSDT')
            timeframe: Interval code (e.g., '4h', '1d')
            limit: Maximum number of candles

        Returns:
            Provider rows verbatim, ascending by open time. Each row starts
            with open_time (ms), open, high, low, close, volume.
        """
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
