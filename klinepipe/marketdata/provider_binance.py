"""Binance USDT-M futures market data provider."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from klinepipe.errors import ProviderRequestError, RateLimitedError

logger = logging.getLogger(__name__)

EXCHANGE_INFO_PATH = "/fapi/v1/exchangeInfo"
KLINES_PATH = "/fapi/v1/klines"

# 418 is returned once an IP keeps hammering after 429s
RATE_LIMIT_STATUSES = (418, 429)


class BinanceProvider:
    """Public-endpoint client for Binance futures market data.

    One ``httpx.AsyncClient`` is created at construction and shared by every
    task of every run; it is safe for concurrent use.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-MBX-APIKEY"] = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )
        logger.info(f"BinanceProvider initialized ({base_url})")

    async def fetch_exchange_info(self) -> list[dict[str, Any]]:
        payload = await self._get_json(EXCHANGE_INFO_PATH)
        if not isinstance(payload, dict) or not isinstance(payload.get("symbols"), list):
            raise ProviderRequestError("exchangeInfo response has no symbols array")
        return payload["symbols"]

    async def fetch_klines(self, symbol: str, timeframe: str, limit: int) -> list[list[Any]]:
        payload = await self._get_json(
            KLINES_PATH,
            params={"symbol": symbol, "interval": timeframe, "limit": limit},
        )
        if not isinstance(payload, list):
            raise ProviderRequestError(f"klines response for {symbol} is not a list")
        return payload

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise ProviderRequestError(f"GET {path} failed: {e}") from e

        if response.status_code in RATE_LIMIT_STATUSES:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitedError(
                f"GET {path} rate limited (retry-after={retry_after})",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise ProviderRequestError(
                f"GET {path} returned {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderRequestError(f"GET {path} returned invalid JSON") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        # Binance errors look like {"code": -1121, "msg": "Invalid symbol."}
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and "msg" in body:
            return f"{body.get('code')} {body['msg']}"
        return response.text[:200]
