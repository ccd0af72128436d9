"""Deterministic mock market data provider."""
import logging
import hashlib
from typing import Any, Callable, Dict, Iterable, List, Optional
from datetime import datetime, timedelta, timezone

from klinepipe.errors import ProviderRequestError

logger = logging.getLogger(__name__)

# Interval code to minutes mapping
TIMEFRAME_MINUTES = {
    "1m": 1,
    "3m": 3,
    "5m": 5,
    "15m": 15,
    "30m": 30,
    "1h": 60,
    "2h": 120,
    "4h": 240,
    "6h": 360,
    "8h": 480,
    "12h": 720,
    "1d": 1440,
    "3d": 4320,
    "1w": 10080,
}

# Mixed universe so the lister filter has something to reject
DEFAULT_UNIVERSE: List[Dict[str, Any]] = [
    {"symbol": "BTCUSDT", "quoteAsset": "USDT", "status": "TRADING", "contractType": "PERPETUAL"},
    {"symbol": "ETHUSDT", "quoteAsset": "USDT", "status": "TRADING", "contractType": "PERPETUAL"},
    {"symbol": "ETHBUSD", "quoteAsset": "BUSD", "status": "TRADING", "contractType": "PERPETUAL"},
    {"symbol": "BTCUSDT_251226", "quoteAsset": "USDT", "status": "TRADING", "contractType": "CURRENT_QUARTER"},
    {"symbol": "SOLUSDT", "quoteAsset": "USDT", "status": "TRADING", "contractType": "PERPETUAL"},
    {"symbol": "LUNAUSDT", "quoteAsset": "USDT", "status": "SETTLING", "contractType": "PERPETUAL"},
    {"symbol": "BNBUSDT", "quoteAsset": "USDT", "status": "TRADING", "contractType": "PERPETUAL"},
    {"symbol": "XRPUSDT", "quoteAsset": "USDT", "status": "TRADING", "contractType": "PERPETUAL"},
]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MockProvider:
    """Deterministic mock provider - same inputs produce same outputs."""

    def __init__(
        self,
        universe: Optional[Iterable[Dict[str, Any]]] = None,
        fail_symbols: Optional[Iterable[str]] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.universe = [dict(s) for s in (universe if universe is not None else DEFAULT_UNIVERSE)]
        self.fail_symbols = set(fail_symbols or ())
        self.clock = clock
        logger.info("MockProvider initialized (deterministic)")

    async def fetch_exchange_info(self) -> List[Dict[str, Any]]:
        return [dict(s) for s in self.universe]

    async def fetch_klines(
        self,
        symbol: str,
        timeframe: str,
        limit: int,
    ) -> List[List[Any]]:
        """
        Generate deterministic klines in the provider's row layout.

        Ensures:
        - Same symbol/timeframe/clock => same output
        - Candles aligned to timeframe boundaries
        - Closed candles only (no partial)
        - Ascending order
        """
        if symbol in self.fail_symbols:
            raise ProviderRequestError(f"Invalid symbol: {symbol}", status_code=400)
        if timeframe not in TIMEFRAME_MINUTES:
            raise ProviderRequestError(f"Invalid interval: {timeframe}", status_code=400)
        if limit < 1:
            raise ProviderRequestError(f"Invalid limit: {limit}", status_code=400)

        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        # Align to timeframe boundary (floor); the bucket containing now is still open
        candle_minutes = TIMEFRAME_MINUTES[timeframe]
        epoch = datetime(2020, 1, 1, tzinfo=timezone.utc)
        candles_since_epoch = int((now - epoch).total_seconds() / 60 / candle_minutes)
        last_closed = epoch + timedelta(minutes=(candles_since_epoch - 1) * candle_minutes)

        rows = []
        for i in range(limit - 1, -1, -1):
            open_time = last_closed - timedelta(minutes=i * candle_minutes)
            rows.append(self._generate_row(symbol, timeframe, open_time, candle_minutes))

        logger.debug(f"MockProvider generated {len(rows)} klines for {symbol} {timeframe}")
        return rows

    def _generate_row(
        self,
        symbol: str,
        timeframe: str,
        open_time: datetime,
        candle_minutes: int,
    ) -> List[Any]:
        """Generate single deterministic kline row."""
        seed_str = f"{symbol}:{timeframe}:{open_time.isoformat()}"
        seed = int(hashlib.md5(seed_str.encode()).hexdigest(), 16)

        # Base price depends on symbol only
        base_price = 100.0 + int(hashlib.md5(symbol.encode()).hexdigest(), 16) % 50000

        price_seed = seed % 1000000
        open_price = base_price * (1 + (price_seed % 100 - 50) / 10000)
        high_price = open_price * (1 + abs((seed // 1000000) % 100) / 10000)
        low_price = open_price * (1 - abs((seed // 2000000) % 100) / 10000)
        close_price = open_price * (1 + ((seed // 3000000) % 100 - 50) / 10000)

        # Ensure OHLC constraints
        high_price = max(high_price, open_price, close_price)
        low_price = min(low_price, open_price, close_price)

        volume = (seed % 100000) + 10000
        open_ms = int(open_time.timestamp() * 1000)
        close_ms = open_ms + candle_minutes * 60 * 1000 - 1

        return [
            open_ms,
            f"{open_price:.2f}",
            f"{high_price:.2f}",
            f"{low_price:.2f}",
            f"{close_price:.2f}",
            f"{float(volume):.3f}",
            close_ms,
            f"{volume * close_price:.2f}",
            int(seed % 5000),
            f"{volume / 2:.3f}",
            f"{volume / 2 * close_price:.2f}",
            "0",
        ]

    async def close(self) -> None:
        return None
