"""Progress events emitted by scaling jobs to an injected observer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

JOB_STARTED = "job_started"
INVENTORY_COMPLETE = "inventory_complete"
FILE_FAILED = "file_failed"
FANOUT_COMPLETE = "fanout_complete"
JOB_COMPLETE = "job_complete"


@dataclass(frozen=True)
class JobEvent:
    """A single progress event."""

    kind: str
    root: str
    details: Dict[str, Any] = field(default_factory=dict)


class JobObserver:
    """Receives job events. The default implementation ignores them."""

    def notify(self, event: JobEvent) -> None:
        return None


class LoggingObserver(JobObserver):
    """Writes every event to the module logger."""

    def notify(self, event: JobEvent) -> None:
        level = logging.WARNING if event.kind == FILE_FAILED else logging.INFO
        if event.details:
            detail_text = " ".join(f"{k}={v}" for k, v in event.details.items())
            logger.log(level, "%s %s %s", event.kind, event.root, detail_text)
        else:
            logger.log(level, "%s %s", event.kind, event.root)


class RecordingObserver(JobObserver):
    """Keeps every event in memory, in arrival order."""

    def __init__(self) -> None:
        self.events: List[JobEvent] = []

    def notify(self, event: JobEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [event.kind for event in self.events]


__all__ = [
    "JobEvent",
    "JobObserver",
    "LoggingObserver",
    "RecordingObserver",
    "JOB_STARTED",
    "INVENTORY_COMPLETE",
    "FILE_FAILED",
    "FANOUT_COMPLETE",
    "JOB_COMPLETE",
]
