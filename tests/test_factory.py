"""Tests for pipeline construction from configuration."""
import json

import pytest

from klinepipe import factory
from klinepipe.config import Config
from klinepipe.factory import build_pipeline
from klinepipe.marketdata.provider_binance import BinanceProvider
from klinepipe.marketdata.provider_mock import MockProvider
from klinepipe.storage.base import kline_key
from klinepipe.storage.file_store import FileContentStore
from klinepipe.storage.sql_store import SqlContentStore


class SqliteConfig(Config):
    MARKET_DATA_PROVIDER = "mock"
    STORAGE_BACKEND = "database"
    MAX_CONCURRENCY = 3
    KLINE_LIMIT = 20
    QUOTE_ASSET = "USDT"
    CONTRACT_TYPE = "PERPETUAL"
    SCHEDULE_TIMEFRAME = "1h"
    SCHEDULE_INTERVAL_SECONDS = 3600
    WEBHOOK_URL = ""


@pytest.mark.asyncio
async def test_database_pipeline_runs_end_to_end(tmp_path):
    class FileDbConfig(SqliteConfig):
        DATABASE_URL = f"sqlite+aiosqlite:///{tmp_path / 'klines.db'}"

    pipeline = await build_pipeline(FileDbConfig)
    try:
        assert isinstance(pipeline.provider, MockProvider)
        assert isinstance(pipeline.store, SqlContentStore)
        assert pipeline.coordinator.max_concurrency == 3
        assert pipeline.trigger.timeframe == "1h"

        result = await pipeline.coordinator.run("1h")

        assert result.failed == {}
        assert len(result.succeeded) == 5
        stored = json.loads(await pipeline.store.read(kline_key("ETHUSDT", "1h")))
        assert len(stored["klines"]) == 20
    finally:
        await pipeline.close()


@pytest.mark.asyncio
async def test_filesystem_and_binance_selection(tmp_path):
    class FileConfig(SqliteConfig):
        MARKET_DATA_PROVIDER = "binance"
        STORAGE_BACKEND = "filesystem"
        STORAGE_DIR = str(tmp_path)

    pipeline = await build_pipeline(FileConfig)
    try:
        assert isinstance(pipeline.provider, BinanceProvider)
        assert isinstance(pipeline.store, FileContentStore)
        assert pipeline.engine is None
    finally:
        await pipeline.close()


class ClosingProvider(MockProvider):
    def __init__(self, close_error: Exception | None = None) -> None:
        super().__init__()
        self.closed = False
        self.close_error = close_error

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


@pytest.mark.asyncio
async def test_invalid_storage_backend_closes_built_provider(monkeypatch):
    class BadStorageConfig(SqliteConfig):
        STORAGE_BACKEND = "s3"

    provider = ClosingProvider()
    monkeypatch.setattr(factory, "build_provider", lambda config: provider)

    with pytest.raises(ValueError, match="Invalid STORAGE_BACKEND"):
        await build_pipeline(BadStorageConfig)
    assert provider.closed


@pytest.mark.asyncio
async def test_failed_schema_init_disposes_engine_and_provider(monkeypatch, tmp_path):
    class FileDbConfig(SqliteConfig):
        DATABASE_URL = f"sqlite+aiosqlite:///{tmp_path / 'klines.db'}"

    provider = ClosingProvider()
    disposed = []

    async def failing_init_db(engine):
        raise RuntimeError("schema locked")

    async def recording_close_db(engine):
        disposed.append(engine)
        await engine.dispose()

    monkeypatch.setattr(factory, "build_provider", lambda config: provider)
    monkeypatch.setattr(factory, "init_db", failing_init_db)
    monkeypatch.setattr(factory, "close_db", recording_close_db)

    with pytest.raises(RuntimeError, match="schema locked"):
        await build_pipeline(FileDbConfig)
    assert len(disposed) == 1
    assert provider.closed


@pytest.mark.asyncio
async def test_injected_provider_is_left_open_on_failure():
    class BadStorageConfig(SqliteConfig):
        STORAGE_BACKEND = "s3"

    provider = ClosingProvider()

    with pytest.raises(ValueError):
        await build_pipeline(BadStorageConfig, provider=provider)
    assert not provider.closed


@pytest.mark.asyncio
async def test_close_disposes_engine_even_if_provider_close_fails(monkeypatch, tmp_path):
    class FileDbConfig(SqliteConfig):
        DATABASE_URL = f"sqlite+aiosqlite:///{tmp_path / 'klines.db'}"

    disposed = []

    async def recording_close_db(engine):
        disposed.append(engine)
        await engine.dispose()

    monkeypatch.setattr(factory, "close_db", recording_close_db)
    pipeline = await build_pipeline(FileDbConfig, provider=ClosingProvider(close_error=RuntimeError("socket stuck")))

    with pytest.raises(RuntimeError, match="socket stuck"):
        await pipeline.close()
    assert disposed == [pipeline.engine]
