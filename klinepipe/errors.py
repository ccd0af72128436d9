"""Pipeline error taxonomy."""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for kline pipeline errors."""


class ProviderError(PipelineError):
    """Symbol listing failed; the run is aborted before any fetch."""


class FetchError(PipelineError):
    """Provider call for one (symbol, timeframe) failed; nothing was written."""

    kind = "fetch"

    def __init__(self, symbol: str, timeframe: str, message: str) -> None:
        super().__init__(f"{symbol}/{timeframe}: {message}")
        self.symbol = symbol
        self.timeframe = timeframe
        self.message = message


class StoreError(PipelineError):
    """Payload was fetched but the content store write failed."""

    kind = "store"

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
        self.message = message


class ProviderRequestError(PipelineError):
    """Transport, HTTP status or decode failure talking to the provider."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(ProviderRequestError):
    """Provider rejected the request for exceeding its rate limit."""
