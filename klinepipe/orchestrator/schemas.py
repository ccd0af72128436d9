"""Schemas for fan-out runs."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, computed_field


FailureKind = Literal["fetch", "store", "timeout", "error"]
RunStatus = Literal["COMPLETED"]


class TaskFailure(BaseModel):
    kind: FailureKind
    message: str


class RunRequest(BaseModel):
    timeframe: str = Field(..., min_length=1, max_length=10)
    timeout_seconds: float | None = Field(default=None, gt=0)


class RunResult(BaseModel):
    """Outcome of one completed run.

    Every listed symbol appears exactly once, either in ``succeeded`` or as a
    key of ``failed``. Both are ordered by the listing order.
    """

    run_id: str
    timeframe: str
    status: RunStatus = "COMPLETED"
    started_at: datetime
    finished_at: datetime
    symbols: list[str]
    succeeded: list[str]
    failed: dict[str, TaskFailure] = Field(default_factory=dict)

    @computed_field
    @property
    def total(self) -> int:
        return len(self.symbols)

    @computed_field
    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @computed_field
    @property
    def failure_count(self) -> int:
        return len(self.failed)

    def summary(self) -> str:
        elapsed = (self.finished_at - self.started_at).total_seconds()
        return (
            f"run {self.run_id} timeframe={self.timeframe}: "
            f"{self.success_count}/{self.total} stored, {self.failure_count} failed in {elapsed:.1f}s"
        )
