"""Scheduler integration."""

from berth.integrations.scheduler.abc import DeleteOutcome, Scheduler
from berth.integrations.scheduler.fake import FakeScheduler

__all__ = ["DeleteOutcome", "FakeScheduler", "Scheduler"]
