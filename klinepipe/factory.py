"""Build the pipeline components from configuration."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from klinepipe.config import Config
from klinepipe.marketdata.fetcher import KlineFetcher
from klinepipe.marketdata.provider_base import MarketDataProvider
from klinepipe.marketdata.provider_binance import BinanceProvider
from klinepipe.marketdata.provider_mock import MockProvider
from klinepipe.marketdata.schemas import SymbolFilter
from klinepipe.marketdata.symbols import SymbolLister
from klinepipe.notifier import Notifier
from klinepipe.orchestrator.service import FanOutCoordinator
from klinepipe.scheduler.trigger import SchedulerTrigger
from klinepipe.storage.base import ContentStore
from klinepipe.storage.db import close_db, init_db, make_engine
from klinepipe.storage.file_store import FileContentStore
from klinepipe.storage.sql_store import SqlContentStore

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    """Components wired once at startup and used read-only afterwards."""

    provider: MarketDataProvider
    store: ContentStore
    coordinator: FanOutCoordinator
    trigger: SchedulerTrigger
    notifier: Notifier
    engine: Optional[AsyncEngine] = None

    async def close(self) -> None:
        if self.trigger.running:
            await self.trigger.stop(cancel_inflight=True)
        try:
            await self.provider.close()
        finally:
            if self.engine is not None:
                await close_db(self.engine)


def build_provider(config: type[Config] = Config) -> MarketDataProvider:
    if config.MARKET_DATA_PROVIDER == "mock":
        return MockProvider()
    if config.MARKET_DATA_PROVIDER == "binance":
        return BinanceProvider(
            base_url=config.PROVIDER_BASE_URL,
            api_key=config.PROVIDER_API_KEY,
            timeout=config.PROVIDER_TIMEOUT_SECONDS,
        )
    raise ValueError(f"Invalid MARKET_DATA_PROVIDER: {config.MARKET_DATA_PROVIDER}")


async def build_store(config: type[Config] = Config) -> tuple[ContentStore, Optional[AsyncEngine]]:
    """Return the configured content store and, for the database backend, its engine."""
    if config.STORAGE_BACKEND == "database":
        engine = make_engine(config.DATABASE_URL)
        try:
            await init_db(engine)
        except Exception:
            await close_db(engine)
            raise
        return SqlContentStore(engine), engine
    if config.STORAGE_BACKEND == "filesystem":
        return FileContentStore(config.STORAGE_DIR), None
    raise ValueError(f"Invalid STORAGE_BACKEND: {config.STORAGE_BACKEND}")


async def build_pipeline(
    config: type[Config] = Config,
    provider: Optional[MarketDataProvider] = None,
) -> Pipeline:
    """Construct provider, store, coordinator and trigger from ``config``.

    A provider passed in stays owned by the caller if the build fails.
    """
    owns_provider = provider is None
    provider = provider or build_provider(config)
    try:
        store, engine = await build_store(config)
    except Exception:
        if owns_provider:
            await provider.close()
        raise

    lister = SymbolLister(
        provider,
        SymbolFilter(quote_asset=config.QUOTE_ASSET, contract_type=config.CONTRACT_TYPE),
    )
    fetcher = KlineFetcher(provider, store, limit=config.KLINE_LIMIT)
    coordinator = FanOutCoordinator(
        lister,
        fetcher,
        max_concurrency=config.MAX_CONCURRENCY,
        timeout=config.RUN_TIMEOUT_SECONDS or None,
    )
    notifier = Notifier(config.WEBHOOK_URL, app_name=config.APP_NAME)
    trigger = SchedulerTrigger(
        coordinator,
        timeframe=config.SCHEDULE_TIMEFRAME,
        interval_seconds=config.SCHEDULE_INTERVAL_SECONDS,
        notifier=notifier,
        allow_overlap=config.SCHEDULER_ALLOW_OVERLAP,
    )

    logger.info(
        f"Pipeline built: provider={config.MARKET_DATA_PROVIDER}, storage={config.STORAGE_BACKEND}, "
        f"max_concurrency={config.MAX_CONCURRENCY}"
    )
    return Pipeline(
        provider=provider,
        store=store,
        coordinator=coordinator,
        trigger=trigger,
        notifier=notifier,
        engine=engine,
    )
