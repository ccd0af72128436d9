"""Fan-out run orchestration."""
from klinepipe.orchestrator.schemas import RunRequest, RunResult, TaskFailure
from klinepipe.orchestrator.service import FanOutCoordinator

__all__ = ["RunRequest", "RunResult", "TaskFailure", "FanOutCoordinator"]
