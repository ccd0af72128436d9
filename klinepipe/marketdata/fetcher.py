"""Kline fetch-and-store for one (symbol, timeframe) pair."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from klinepipe.errors import FetchError, StoreError
from klinepipe.marketdata.provider_base import MarketDataProvider
from klinepipe.marketdata.schemas import Symbol
from klinepipe.storage.base import ContentStore, kline_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    symbol: str
    timeframe: str
    key: str
    candles: int
    size_bytes: int


def encode_klines(symbol: str, timeframe: str, klines: Any) -> bytes:
    """Canonical encoding: sorted keys, compact separators, UTF-8."""
    envelope = {"symbol": symbol, "timeframe": timeframe, "klines": klines}
    return json.dumps(envelope, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class KlineFetcher:
    """Fetches one kline series and writes it to the content store.

    Stateless apart from its injected collaborators; never retries.
    """

    def __init__(self, provider: MarketDataProvider, store: ContentStore, limit: int = 500) -> None:
        self.provider = provider
        self.store = store
        self.limit = limit

    async def fetch(self, symbol: Symbol | str, timeframe: str) -> FetchResult:
        """
        Fetch, serialize and store the series for ``symbol``/``timeframe``.

        Raises:
            FetchError: the provider call or serialization failed; no write attempted.
            StoreError: the payload was fetched but the write failed.
        """
        name = symbol.name if isinstance(symbol, Symbol) else symbol

        try:
            klines = await self.provider.fetch_klines(symbol=name, timeframe=timeframe, limit=self.limit)
        except Exception as e:
            raise FetchError(name, timeframe, str(e) or type(e).__name__) from e

        try:
            data = encode_klines(name, timeframe, klines)
        except (TypeError, ValueError) as e:
            raise FetchError(name, timeframe, f"payload not serializable: {e}") from e

        key = kline_key(name, timeframe)
        try:
            await self.store.write(key, data)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(key, str(e) or type(e).__name__) from e

        count = len(klines) if isinstance(klines, list) else 0
        logger.debug(f"Stored {count} klines for {name}/{timeframe} at {key}")
        return FetchResult(symbol=name, timeframe=timeframe, key=key, candles=count, size_bytes=len(data))
