"""FastAPI dependencies resolving the pipeline built at startup."""
from fastapi import HTTPException, Request

from klinepipe.factory import Pipeline
from klinepipe.orchestrator.service import FanOutCoordinator
from klinepipe.scheduler.trigger import SchedulerTrigger
from klinepipe.storage.base import ContentStore


def get_pipeline(request: Request) -> Pipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return pipeline


def get_coordinator(request: Request) -> FanOutCoordinator:
    return get_pipeline(request).coordinator


def get_store(request: Request) -> ContentStore:
    return get_pipeline(request).store


def get_trigger(request: Request) -> SchedulerTrigger:
    return get_pipeline(request).trigger
