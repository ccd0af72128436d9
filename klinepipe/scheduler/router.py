"""FastAPI routes controlling the scheduler trigger."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from klinepipe.dependencies import get_trigger
from klinepipe.orchestrator.schemas import RunResult
from klinepipe.schemas import MessageResponse
from klinepipe.scheduler.trigger import SchedulerTrigger

router = APIRouter(prefix="/scheduler", tags=["scheduler"])


class SchedulerStatusResponse(BaseModel):
    state: str
    running: bool
    timeframe: str
    interval_seconds: float
    allow_overlap: bool
    active_runs: int
    runs_started: int
    runs_completed: int
    runs_aborted: int
    runs_failed: int
    runs_skipped: int
    started_at: Optional[str]
    last_fired_at: Optional[str]
    last_outcome: Optional[str]
    last_summary: Optional[str]
    last_error: Optional[str]


@router.post("/start", response_model=MessageResponse)
async def start_scheduler(trigger: SchedulerTrigger = Depends(get_trigger)) -> MessageResponse:
    if trigger.start():
        return MessageResponse(message="Scheduler started")
    raise HTTPException(status_code=400, detail="Scheduler already running")


@router.post("/stop", response_model=MessageResponse)
async def stop_scheduler(trigger: SchedulerTrigger = Depends(get_trigger)) -> MessageResponse:
    if await trigger.stop():
        return MessageResponse(message="Scheduler stopped")
    raise HTTPException(status_code=400, detail="Scheduler not running")


@router.get("/status", response_model=SchedulerStatusResponse)
async def scheduler_status(trigger: SchedulerTrigger = Depends(get_trigger)) -> SchedulerStatusResponse:
    return SchedulerStatusResponse(**trigger.get_status())


@router.post("/fire", response_model=RunResult)
async def fire_now(trigger: SchedulerTrigger = Depends(get_trigger)) -> RunResult:
    """Fire the scheduled timeframe immediately, outside the cadence."""
    fired = await trigger.fire()
    if fired.outcome == "skipped":
        raise HTTPException(status_code=409, detail=f"Run skipped: {fired.error}")
    if fired.outcome == "aborted":
        raise HTTPException(status_code=502, detail=f"Run aborted: {fired.error}")
    if fired.result is None:
        raise HTTPException(status_code=500, detail=f"Run failed: {fired.error}")
    return fired.result
