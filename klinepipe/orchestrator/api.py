"""FastAPI API for on-demand runs."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from klinepipe.dependencies import get_coordinator
from klinepipe.errors import ProviderError
from klinepipe.orchestrator.schemas import RunRequest, RunResult
from klinepipe.orchestrator.service import FanOutCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/runs", tags=["runs"])


@router.post("", response_model=RunResult)
async def run_pipeline(
    payload: RunRequest,
    coordinator: FanOutCoordinator = Depends(get_coordinator),
) -> RunResult:
    """
    Run the fan-out once for ``timeframe`` and return the aggregated outcome.

    A completed run is returned even when every task failed; 502 means the
    symbol listing failed and nothing was fetched.
    """
    try:
        return await coordinator.run(payload.timeframe, timeout=payload.timeout_seconds)
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=f"Run aborted: {e}")
