"""Content store abstraction and key derivation."""
from typing import Optional, Protocol
from urllib.parse import quote

KEY_PREFIX = "klines"


def kline_key(symbol: str, timeframe: str) -> str:
    """
    Derive the storage key for one (symbol, timeframe) series.

    Deterministic and stable across runs, so a repeated fetch overwrites the
    previous object. Components are percent-encoded, so distinct pairs can
    never map to the same key.
    """
    return f"{KEY_PREFIX}/{quote(timeframe, safe='')}/{quote(symbol, safe='')}.json"


class ContentStore(Protocol):
    """Key-value store for serialized kline payloads."""

    async def write(self, key: str, data: bytes) -> None:
        """Write (or overwrite) ``data`` under ``key``. Raises StoreError."""
        ...

    async def read(self, key: str) -> Optional[bytes]:
        """Return the bytes stored under ``key`` or None."""
        ...
