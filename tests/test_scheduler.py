"""Tests for the scheduler trigger."""
import asyncio
from datetime import datetime, timezone

import pytest

from klinepipe.errors import ProviderError
from klinepipe.orchestrator.schemas import RunResult
from klinepipe.scheduler.trigger import SchedulerTrigger, TriggerState


def make_result(timeframe: str) -> RunResult:
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return RunResult(
        run_id="run-1",
        timeframe=timeframe,
        started_at=now,
        finished_at=now,
        symbols=["BTCUSDT"],
        succeeded=["BTCUSDT"],
    )


class CoordinatorStub:
    def __init__(self, delay: float = 0.0, error: Exception | None = None) -> None:
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, float | None]] = []
        self.active = 0
        self.max_active = 0

    async def run(self, timeframe: str, *, timeout: float | None = None) -> RunResult:
        self.calls.append((timeframe, timeout))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return make_result(timeframe)
        finally:
            self.active -= 1


class NotifierStub:
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def send_run_completed(self, result: RunResult) -> bool:
        self.events.append(("run_completed", result.run_id))
        return True

    def send_run_aborted(self, timeframe: str, error: Exception) -> bool:
        self.events.append(("run_aborted", timeframe, str(error)))
        return True

    def send_scheduler_started(self, timeframe: str, interval_seconds: int) -> bool:
        self.events.append(("scheduler_started", timeframe))
        return True

    def send_scheduler_stopped(self) -> bool:
        self.events.append(("scheduler_stopped",))
        return True


@pytest.mark.asyncio
async def test_fire_runs_configured_timeframe_and_forwards_result():
    coordinator = CoordinatorStub()
    notifier = NotifierStub()
    trigger = SchedulerTrigger(coordinator, "4h", 60, notifier=notifier, run_timeout=30)

    fired = await trigger.fire()

    assert fired.outcome == "completed"
    assert fired.result is not None and fired.result.timeframe == "4h"
    assert coordinator.calls == [("4h", 30)]
    assert notifier.events == [("run_completed", "run-1")]
    assert trigger.last_outcome == "completed"
    assert trigger.get_status()["last_summary"].startswith("run run-1")


@pytest.mark.asyncio
async def test_fire_reports_abort_without_raising():
    notifier = NotifierStub()
    trigger = SchedulerTrigger(CoordinatorStub(error=ProviderError("listing down")), "1d", 60, notifier=notifier)

    fired = await trigger.fire()

    assert fired.outcome == "aborted"
    assert fired.result is None
    assert fired.error == "listing down"
    assert trigger.last_outcome == "aborted"
    assert trigger.stats["runs_aborted"] == 1
    assert notifier.events == [("run_aborted", "1d", "listing down")]


@pytest.mark.asyncio
async def test_overlapping_fires_run_concurrently_when_allowed():
    coordinator = CoordinatorStub(delay=0.05)
    trigger = SchedulerTrigger(coordinator, "4h", 60, allow_overlap=True)

    results = await asyncio.gather(trigger.fire(), trigger.fire())

    assert [r.outcome for r in results] == ["completed", "completed"]
    assert coordinator.max_active == 2


@pytest.mark.asyncio
async def test_overlapping_fire_is_skipped_when_disallowed():
    coordinator = CoordinatorStub(delay=0.05)
    trigger = SchedulerTrigger(coordinator, "4h", 60, allow_overlap=False)

    first, second = await asyncio.gather(trigger.fire(), trigger.fire())

    assert first.outcome == "completed"
    assert second.outcome == "skipped"
    assert len(coordinator.calls) == 1
    assert trigger.stats["runs_skipped"] == 1

    # Once the earlier run finished, the next firing goes through
    assert (await trigger.fire()).outcome == "completed"


@pytest.mark.asyncio
async def test_start_fires_on_cadence_and_stop_halts_loop():
    coordinator = CoordinatorStub()
    notifier = NotifierStub()
    trigger = SchedulerTrigger(coordinator, "1h", 0.05, notifier=notifier)

    assert trigger.start() is True
    assert trigger.start() is False
    await asyncio.sleep(0.12)
    assert await trigger.stop() is True
    fired = len(coordinator.calls)
    await asyncio.sleep(0.1)

    assert fired >= 2
    assert len(coordinator.calls) == fired
    assert trigger.state == TriggerState.STOPPED
    assert ("scheduler_stopped",) in notifier.events
    assert await trigger.stop() is False


@pytest.mark.asyncio
async def test_stop_can_cancel_inflight_runs():
    coordinator = CoordinatorStub(delay=5.0)
    trigger = SchedulerTrigger(coordinator, "1h", 60)

    trigger.start()
    await asyncio.sleep(0.02)
    assert trigger.get_status()["active_runs"] == 1

    await trigger.stop(cancel_inflight=True)

    assert coordinator.active == 0
    assert trigger.get_status()["active_runs"] == 0


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        SchedulerTrigger(CoordinatorStub(), "4h", 0)


class SequencedCoordinator:
    """Each call takes the next (delay, error) step."""

    def __init__(self, steps: list[tuple[float, Exception | None]]) -> None:
        self.steps = list(steps)

    async def run(self, timeframe: str, *, timeout: float | None = None) -> RunResult:
        delay, error = self.steps.pop(0)
        await asyncio.sleep(delay)
        if error is not None:
            raise error
        return make_result(timeframe)


@pytest.mark.asyncio
async def test_unexpected_run_error_is_counted_not_raised():
    notifier = NotifierStub()
    trigger = SchedulerTrigger(CoordinatorStub(error=RuntimeError("db pool exhausted")), "4h", 60, notifier=notifier)

    fired = await trigger.fire()

    assert fired.outcome == "failed"
    assert fired.error == "db pool exhausted"
    assert trigger.stats["runs_failed"] == 1
    assert trigger.stats["runs_completed"] == 0
    assert trigger.get_status()["active_runs"] == 0
    assert notifier.events == [("run_aborted", "4h", "db pool exhausted")]


@pytest.mark.asyncio
async def test_loop_records_unexpected_run_errors():
    trigger = SchedulerTrigger(CoordinatorStub(error=RuntimeError("boom")), "1h", 60)

    trigger.start()
    await asyncio.sleep(0.02)
    status = trigger.get_status()
    await trigger.stop()

    assert status["runs_failed"] == 1
    assert status["last_outcome"] == "failed"
    assert status["last_error"] == "boom"


@pytest.mark.asyncio
async def test_each_fire_reports_its_own_outcome_under_overlap():
    coordinator = SequencedCoordinator([(0.01, ProviderError("listing down")), (0.05, None)])
    trigger = SchedulerTrigger(coordinator, "4h", 60, allow_overlap=True)

    aborted, completed = await asyncio.gather(trigger.fire(), trigger.fire())

    assert aborted.outcome == "aborted"
    assert aborted.error == "listing down"
    assert completed.outcome == "completed"
    # Shared status reflects whichever firing finished last
    assert trigger.last_outcome == "completed"
    assert trigger.last_error is None
