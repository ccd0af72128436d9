"""Market data package: providers, symbol listing and kline fetching."""
from klinepipe.marketdata.fetcher import FetchResult, KlineFetcher, encode_klines
from klinepipe.marketdata.schemas import Symbol, SymbolFilter
from klinepipe.marketdata.symbols import SymbolLister

__all__ = ["FetchResult", "KlineFetcher", "encode_klines", "Symbol", "SymbolFilter", "SymbolLister"]
