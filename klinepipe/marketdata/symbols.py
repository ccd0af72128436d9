"""Eligible symbol listing."""
from __future__ import annotations

import logging

from klinepipe.errors import ProviderError
from klinepipe.marketdata.provider_base import MarketDataProvider
from klinepipe.marketdata.schemas import Symbol, SymbolFilter

logger = logging.getLogger(__name__)


class SymbolLister:
    """Lists the provider symbols that pass a fixed eligibility filter."""

    def __init__(self, provider: MarketDataProvider, symbol_filter: SymbolFilter | None = None) -> None:
        self.provider = provider
        self.symbol_filter = symbol_filter or SymbolFilter()

    async def list(self) -> list[Symbol]:
        """
        Query exchange metadata once and return the eligible symbols.

        Provider order is preserved and duplicates are not removed.

        Raises:
            ProviderError: the call failed or an entry could not be decoded.
                No partial list is ever returned.
        """
        try:
            raw_symbols = await self.provider.fetch_exchange_info()
        except Exception as e:
            logger.error(f"Exchange metadata request failed: {e}", exc_info=True)
            raise ProviderError(f"Symbol listing failed: {e}") from e
        if not isinstance(raw_symbols, list):
            raise ProviderError(f"Exchange metadata is not a list: {type(raw_symbols).__name__}")

        symbols: list[Symbol] = []
        for raw in raw_symbols:
            try:
                symbol = Symbol.from_exchange_info(raw)
            except (KeyError, TypeError, ValueError) as e:
                raise ProviderError(f"Undecodable exchange metadata entry {raw!r}: {e}") from e
            if self.symbol_filter.matches(symbol):
                symbols.append(symbol)

        logger.info(
            f"Listed {len(symbols)} eligible symbols out of {len(raw_symbols)} "
            f"(quote={self.symbol_filter.quote_asset}, type={self.symbol_filter.contract_type})"
        )
        return symbols
