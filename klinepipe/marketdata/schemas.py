"""Pydantic schemas for market data."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


STATUS_TRADING = "TRADING"
CONTRACT_PERPETUAL = "PERPETUAL"


class Symbol(BaseModel):
    """Tradeable instrument as reported by the provider's exchange metadata."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    quote_asset: str
    status: str
    contract_type: str = ""

    @classmethod
    def from_exchange_info(cls, raw: dict[str, Any]) -> "Symbol":
        """Build from one entry of an exchangeInfo ``symbols`` array.

        Raises KeyError when the entry lacks a symbol name, quote asset or status.
        Spot listings carry no contract type and get an empty one.
        """
        return cls(
            name=str(raw["symbol"]),
            quote_asset=str(raw["quoteAsset"]),
            status=str(raw["status"]),
            contract_type=str(raw.get("contractType") or ""),
        )

    @property
    def is_trading(self) -> bool:
        return self.status.upper() == STATUS_TRADING

    @property
    def is_perpetual(self) -> bool:
        return self.contract_type.upper() == CONTRACT_PERPETUAL


class SymbolFilter(BaseModel):
    """Eligibility policy applied by the symbol lister."""

    model_config = ConfigDict(frozen=True)

    quote_asset: str = "USDT"
    contract_type: str = CONTRACT_PERPETUAL
    status: str = STATUS_TRADING

    def matches(self, symbol: Symbol) -> bool:
        return (
            symbol.status.upper() == self.status.upper()
            and symbol.quote_asset.upper() == self.quote_asset.upper()
            and symbol.contract_type.upper() == self.contract_type.upper()
        )
