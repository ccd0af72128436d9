"""Bounded-concurrency fan-out coordinator."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol, Sequence

from klinepipe.errors import FetchError, StoreError
from klinepipe.marketdata.schemas import Symbol
from klinepipe.orchestrator.schemas import RunResult, TaskFailure

logger = logging.getLogger(__name__)


class SymbolSource(Protocol):
    async def list(self) -> Sequence[Symbol]:
        ...


class SeriesFetcher(Protocol):
    async def fetch(self, symbol: Symbol, timeframe: str) -> object:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_by_name(listed: Sequence[Symbol]) -> list[Symbol]:
    """One task per name: a repeated listing entry maps to the same storage key."""
    seen: set[str] = set()
    unique: list[Symbol] = []
    for symbol in listed:
        if symbol.name in seen:
            logger.warning(f"Dropping duplicate listing entry for {symbol.name}")
            continue
        seen.add(symbol.name)
        unique.append(symbol)
    return unique


class FanOutCoordinator:
    """Runs one kline collection pass over every eligible symbol.

    Listing happens once per run and fixes the task set. Repeated names in
    the listing collapse into one task, keeping the first occurrence. Tasks
    are admitted FIFO in listing order through a pool of ``max_concurrency``
    workers, so no more than that many fetches are ever in flight.
    """

    def __init__(
        self,
        lister: SymbolSource,
        fetcher: SeriesFetcher,
        max_concurrency: int = 5,
        timeout: float | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.lister = lister
        self.fetcher = fetcher
        self.max_concurrency = max_concurrency
        self.timeout = timeout or None

    async def run(self, timeframe: str, *, timeout: float | None = None) -> RunResult:
        """
        Execute one run for ``timeframe``.

        Args:
            timeframe: Interval code passed unchanged to every task
            timeout: Optional deadline in seconds for the fan-out stage;
                overrides the coordinator default. Symbols still pending at
                the deadline are reported as ``failed(timeout)``.

        Raises:
            ProviderError: symbol listing failed; no task was started.
        """
        run_id = str(uuid.uuid4())
        started_at = _utc_now()
        logger.info(f"Run {run_id} starting for timeframe={timeframe}")

        symbols = _unique_by_name(await self.lister.list())
        outcomes: dict[str, TaskFailure | None] = {}

        deadline = timeout if timeout is not None else self.timeout
        if deadline:
            try:
                await asyncio.wait_for(self._fan_out(symbols, timeframe, outcomes), deadline)
            except asyncio.TimeoutError:
                pending = [s.name for s in symbols if s.name not in outcomes]
                logger.warning(f"Run {run_id} hit its {deadline}s deadline with {len(pending)} tasks pending")
                for name in pending:
                    outcomes[name] = TaskFailure(kind="timeout", message=f"run deadline of {deadline}s exceeded")
        else:
            await self._fan_out(symbols, timeframe, outcomes)

        result = RunResult(
            run_id=run_id,
            timeframe=timeframe,
            started_at=started_at,
            finished_at=_utc_now(),
            symbols=[s.name for s in symbols],
            succeeded=[s.name for s in symbols if outcomes.get(s.name) is None],
            failed={s.name: outcomes[s.name] for s in symbols if outcomes.get(s.name) is not None},
        )
        logger.info(result.summary())
        return result

    async def _fan_out(
        self,
        symbols: list[Symbol],
        timeframe: str,
        outcomes: dict[str, TaskFailure | None],
    ) -> None:
        if not symbols:
            return
        queue: asyncio.Queue[Symbol] = asyncio.Queue()
        for symbol in symbols:
            queue.put_nowait(symbol)

        workers = [
            asyncio.create_task(self._worker(queue, timeframe, outcomes))
            for _ in range(min(self.max_concurrency, len(symbols)))
        ]
        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                if not worker.done():
                    worker.cancel()

    async def _worker(
        self,
        queue: asyncio.Queue[Symbol],
        timeframe: str,
        outcomes: dict[str, TaskFailure | None],
    ) -> None:
        while True:
            try:
                symbol = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcomes[symbol.name] = await self._run_task(symbol, timeframe)

    async def _run_task(self, symbol: Symbol, timeframe: str) -> TaskFailure | None:
        """Returns None when stored, otherwise the recorded failure."""
        try:
            await self.fetcher.fetch(symbol, timeframe)
        except FetchError as e:
            logger.warning(f"Fetch failed for {symbol.name}/{timeframe}: {e.message}")
            return TaskFailure(kind="fetch", message=e.message)
        except StoreError as e:
            logger.warning(f"Store failed for {symbol.name}/{timeframe}: {e.message}")
            return TaskFailure(kind="store", message=e.message)
        except Exception as e:
            logger.error(f"Unexpected task error for {symbol.name}/{timeframe}: {e}", exc_info=True)
            return TaskFailure(kind="error", message=str(e) or type(e).__name__)
        return None
