"""Scheduled run trigger."""
from klinepipe.scheduler.trigger import SchedulerTrigger, TriggerState

__all__ = ["SchedulerTrigger", "TriggerState"]
