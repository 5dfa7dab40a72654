"""Scheduling subsystem: due-date resolution, publish cycles, background timer."""

from autopublish.scheduling.cycle_runner import CycleRunner
from autopublish.scheduling.due_dates import is_due, resolve_due_date
from autopublish.scheduling.external_sync import ExternalSync, build_mirror_fields
from autopublish.scheduling.publication import PublicationPipeline
from autopublish.scheduling.publish_scheduler import (
    PublishScheduler,
    build_runner,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "CycleRunner",
    "ExternalSync",
    "PublicationPipeline",
    "PublishScheduler",
    "build_mirror_fields",
    "build_runner",
    "is_due",
    "resolve_due_date",
    "start_scheduler",
    "stop_scheduler",
]
