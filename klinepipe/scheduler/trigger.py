"""Fixed-cadence trigger for fan-out runs."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, Protocol

from klinepipe.errors import ProviderError
from klinepipe.notifier import Notifier
from klinepipe.orchestrator.schemas import RunResult

logger = logging.getLogger(__name__)


class TriggerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


FireStatus = Literal["completed", "aborted", "failed", "skipped"]


@dataclass(frozen=True)
class FireOutcome:
    """How one firing ended. ``result`` is set only when it completed."""

    outcome: FireStatus
    result: Optional[RunResult] = None
    error: Optional[str] = None


class RunCoordinator(Protocol):
    async def run(self, timeframe: str, *, timeout: float | None = None) -> RunResult:
        ...


class SchedulerTrigger:
    """Fires ``coordinator.run(timeframe)`` every ``interval_seconds``.

    Each firing is independent. With ``allow_overlap`` a firing starts even
    while an earlier run is still in flight; otherwise it is skipped.
    """

    def __init__(
        self,
        coordinator: RunCoordinator,
        timeframe: str,
        interval_seconds: float,
        notifier: Optional[Notifier] = None,
        allow_overlap: bool = True,
        run_timeout: float | None = None,
        fire_on_start: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.coordinator = coordinator
        self.timeframe = timeframe
        self.interval_seconds = interval_seconds
        self.notifier = notifier
        self.allow_overlap = allow_overlap
        self.run_timeout = run_timeout or None
        self.fire_on_start = fire_on_start

        self.state = TriggerState.STOPPED
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()
        self._active_runs = 0

        self.stats: dict[str, Any] = {
            "runs_started": 0,
            "runs_completed": 0,
            "runs_aborted": 0,
            "runs_failed": 0,
            "runs_skipped": 0,
            "started_at": None,
            "last_fired_at": None,
        }
        self.last_result: Optional[RunResult] = None
        self.last_error: Optional[str] = None
        self.last_outcome: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.state == TriggerState.RUNNING

    async def fire(self) -> FireOutcome:
        """Run once now and report how this firing ended."""
        if not self.allow_overlap and self._active_runs > 0:
            self.stats["runs_skipped"] += 1
            self.last_outcome = "skipped"
            logger.warning(f"Skipping {self.timeframe} run: previous run still in flight")
            return FireOutcome("skipped", error="previous run still in flight")

        self._active_runs += 1
        self.stats["runs_started"] += 1
        self.stats["last_fired_at"] = datetime.now(timezone.utc)
        try:
            result = await self.coordinator.run(self.timeframe, timeout=self.run_timeout)
        except ProviderError as e:
            self.stats["runs_aborted"] += 1
            self.last_outcome = "aborted"
            self.last_error = str(e)
            logger.error(f"Run for {self.timeframe} aborted: {e}", exc_info=True)
            await self._notify("send_run_aborted", self.timeframe, e)
            return FireOutcome("aborted", error=str(e))
        except Exception as e:
            self.stats["runs_failed"] += 1
            self.last_outcome = "failed"
            self.last_error = str(e) or type(e).__name__
            logger.error(f"Run for {self.timeframe} failed unexpectedly: {e}", exc_info=True)
            await self._notify("send_run_aborted", self.timeframe, e)
            return FireOutcome("failed", error=self.last_error)
        finally:
            self._active_runs -= 1

        self.stats["runs_completed"] += 1
        self.last_outcome = "completed"
        self.last_result = result
        self.last_error = None
        await self._notify("send_run_completed", result)
        return FireOutcome("completed", result=result)

    def start(self) -> bool:
        if self.running:
            logger.warning("Scheduler already running")
            return False
        self.state = TriggerState.RUNNING
        self.stats["started_at"] = datetime.now(timezone.utc)
        self._loop_task = asyncio.create_task(self._loop(), name=f"scheduler-{self.timeframe}")
        if self.notifier is not None:
            self._spawn(asyncio.to_thread(self.notifier.send_scheduler_started, self.timeframe, int(self.interval_seconds)))
        logger.info(f"Scheduler started: timeframe={self.timeframe} every {self.interval_seconds}s")
        return True

    async def stop(self, cancel_inflight: bool = False) -> bool:
        if not self.running:
            logger.warning("Scheduler not running")
            return False
        self.state = TriggerState.STOPPED
        if self._loop_task is not None:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None
        if cancel_inflight:
            for task in list(self._inflight):
                task.cancel()
            await asyncio.gather(*self._inflight, return_exceptions=True)
        await self._notify("send_scheduler_stopped")
        logger.info("Scheduler stopped")
        return True

    def get_status(self) -> dict[str, Any]:
        last = self.last_result
        return {
            "state": self.state.value,
            "running": self.running,
            "timeframe": self.timeframe,
            "interval_seconds": self.interval_seconds,
            "allow_overlap": self.allow_overlap,
            "active_runs": self._active_runs,
            "runs_started": self.stats["runs_started"],
            "runs_completed": self.stats["runs_completed"],
            "runs_aborted": self.stats["runs_aborted"],
            "runs_failed": self.stats["runs_failed"],
            "runs_skipped": self.stats["runs_skipped"],
            "started_at": self.stats["started_at"].isoformat() if self.stats["started_at"] else None,
            "last_fired_at": self.stats["last_fired_at"].isoformat() if self.stats["last_fired_at"] else None,
            "last_summary": last.summary() if last else None,
            "last_outcome": self.last_outcome,
            "last_error": self.last_error,
        }

    async def _loop(self) -> None:
        if not self.fire_on_start:
            await asyncio.sleep(self.interval_seconds)
        while True:
            # Not awaited: the cadence does not wait for the previous run
            self._spawn(self.fire())
            await asyncio.sleep(self.interval_seconds)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _notify(self, method: str, *args: Any) -> None:
        if self.notifier is None:
            return
        # requests is blocking; keep it off the event loop
        await asyncio.to_thread(getattr(self.notifier, method), *args)
