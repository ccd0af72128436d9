"""Tests for eligible symbol listing."""
import pytest

from klinepipe.errors import ProviderError
from klinepipe.marketdata.provider_mock import MockProvider
from klinepipe.marketdata.schemas import Symbol, SymbolFilter
from klinepipe.marketdata.symbols import SymbolLister


class StaticProvider:
    def __init__(self, symbols=None, error: Exception | None = None) -> None:
        self.symbols = symbols or []
        self.error = error
        self.calls = 0

    async def fetch_exchange_info(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.symbols


def raw(name: str, status: str, quote: str, contract: str = "PERPETUAL") -> dict:
    return {"symbol": name, "status": status, "quoteAsset": quote, "contractType": contract}


@pytest.mark.asyncio
async def test_filter_keeps_only_trading_usdt_perpetuals():
    provider = StaticProvider(
        [
            raw("BTCUSDT", "TRADING", "USDT"),
            raw("ETHBUSD", "TRADING", "BUSD"),
            raw("SOLUSDT", "BREAK", "USDT"),
        ]
    )
    lister = SymbolLister(provider, SymbolFilter(quote_asset="USDT", contract_type="PERPETUAL"))

    symbols = await lister.list()

    assert [s.name for s in symbols] == ["BTCUSDT"]
    assert provider.calls == 1


@pytest.mark.asyncio
async def test_filter_rejects_non_perpetual_contracts():
    provider = StaticProvider(
        [
            raw("BTCUSDT", "TRADING", "USDT"),
            raw("BTCUSDT_251226", "TRADING", "USDT", "CURRENT_QUARTER"),
            {"symbol": "ETHUSDT", "status": "TRADING", "quoteAsset": "USDT"},
        ]
    )
    symbols = await SymbolLister(provider).list()

    assert [s.name for s in symbols] == ["BTCUSDT"]


@pytest.mark.asyncio
async def test_listing_preserves_provider_order_without_dedup():
    provider = StaticProvider(
        [
            raw("XRPUSDT", "TRADING", "USDT"),
            raw("ADAUSDT", "TRADING", "USDT"),
            raw("BTCUSDT", "TRADING", "USDT"),
            raw("ADAUSDT", "TRADING", "USDT"),
        ]
    )
    symbols = await SymbolLister(provider).list()

    assert [s.name for s in symbols] == ["XRPUSDT", "ADAUSDT", "BTCUSDT", "ADAUSDT"]


@pytest.mark.asyncio
async def test_configured_quote_asset_is_applied():
    provider = StaticProvider([raw("BTCUSDT", "TRADING", "USDT"), raw("BTCUSDC", "TRADING", "USDC")])
    symbols = await SymbolLister(provider, SymbolFilter(quote_asset="USDC")).list()

    assert [s.name for s in symbols] == ["BTCUSDC"]


@pytest.mark.asyncio
async def test_transport_error_becomes_provider_error():
    provider = StaticProvider(error=ConnectionError("network down"))

    with pytest.raises(ProviderError, match="network down"):
        await SymbolLister(provider).list()


@pytest.mark.asyncio
async def test_undecodable_entry_fails_whole_listing():
    provider = StaticProvider([raw("BTCUSDT", "TRADING", "USDT"), {"symbol": "BROKEN"}])

    with pytest.raises(ProviderError, match="Undecodable"):
        await SymbolLister(provider).list()


@pytest.mark.asyncio
async def test_mock_universe_filters_to_trading_perpetuals():
    symbols = await SymbolLister(MockProvider()).list()

    assert [s.name for s in symbols] == ["BTCUSDT", "ETHUSDT", "SOLUSDT", "BNBUSDT", "XRPUSDT"]


def test_symbol_from_exchange_info_defaults_missing_contract_type():
    symbol = Symbol.from_exchange_info({"symbol": "BTCUSDT", "status": "TRADING", "quoteAsset": "USDT"})

    assert symbol.contract_type == ""
    assert symbol.is_trading
    assert not symbol.is_perpetual


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, {"symbols": []}, "BTCUSDT"])
async def test_non_list_metadata_becomes_provider_error(payload):
    class OddProvider:
        async def fetch_exchange_info(self):
            return payload

    with pytest.raises(ProviderError, match="not a list"):
        await SymbolLister(OddProvider()).list()
