"""
Report builder: orchestrates one scaling job and formats its outcome.

A job is a pre-inventory, one engine fan-out and a post-inventory. The post
inventory is never taken before every unit of the fan-out has returned.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .config import EngineConfig, OutputMode, ScaleRequest, SizingMode
from .engine import BatchResult, BatchTransformEngine, output_subdirectory
from .events import (
    INVENTORY_COMPLETE,
    JOB_COMPLETE,
    JOB_STARTED,
    JobEvent,
    JobObserver,
    LoggingObserver,
)
from .inventory import DirectorySnapshot, walk_directory
from .timing import Elapsed

STATUS_OK = "ok"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class JobReport:
    """The outward-facing text report of a job."""

    time: str
    size: str


@dataclass
class JobResult:
    """Structured job result with a success/failure discriminant."""

    status: str
    report: JobReport
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @classmethod
    def error(cls, marker: str) -> "JobResult":
        """Error result carrying ``marker`` in both report fields."""
        return cls(status=STATUS_ERROR, report=JobReport(time=marker, size=marker))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "time": self.report.time,
            "size": self.report.size,
            "status": self.status,
            "succeeded": list(self.succeeded),
            "failed": [{"path": path, "reason": reason} for path, reason in self.failed],
            "cancelled": list(self.cancelled),
        }


def format_time_text(request: ScaleRequest, sizing_mode: SizingMode, elapsed: Elapsed) -> str:
    if sizing_mode is SizingMode.FIXED_TARGET:
        return f"Scale to {request.target_size} took {elapsed}"
    return f"Scale {request.direction.value} took {elapsed}"


def format_size_text(before: DirectorySnapshot, after: DirectorySnapshot) -> str:
    return f"Init dir size: {before.size_text} --> Scaled dir size: {after.size_text}."


def build_report(
    request: ScaleRequest,
    sizing_mode: SizingMode,
    before: DirectorySnapshot,
    after: DirectorySnapshot,
    batch: BatchResult,
) -> JobResult:
    """Combine the two snapshots and the fan-out result into a JobResult."""
    report = JobReport(
        time=format_time_text(request, sizing_mode, batch.elapsed),
        size=format_size_text(before, after),
    )
    return JobResult(
        status=STATUS_OK if batch.ok else STATUS_ERROR,
        report=report,
        succeeded=batch.succeeded,
        failed=batch.failed,
        cancelled=batch.cancelled,
    )


def run_scale_job(
    root: Union[str, Path],
    request: ScaleRequest,
    config: Optional[EngineConfig] = None,
    observer: Optional[JobObserver] = None,
    cancel_event: Optional[threading.Event] = None,
) -> JobResult:
    """
    Scale every image directly inside ``root`` and report the outcome.

    Args:
        root: Directory whose files are transformed
        request: What scaling to apply
        config: Engine configuration (defaults to in-place ratio scaling)
        observer: Receives progress events (defaults to logging them)
        cancel_event: Stops issuing new per-file work once set

    Returns:
        JobResult; status is "error" if any file failed or was cancelled

    Raises:
        InventoryError: If ``root`` (or the output directory) cannot be listed
        OutputDirectoryError: If the output subdirectory cannot be created
    """
    config = config or EngineConfig()
    observer = observer or LoggingObserver()
    root_text = str(root)

    if config.sizing_mode is SizingMode.FIXED_TARGET and request.target_size is None:
        raise ValueError("Fixed-target sizing requires request.target_size")

    observer.notify(
        JobEvent(
            JOB_STARTED,
            root_text,
            {
                "direction": request.direction.value,
                "factor": request.factor,
                "filter": request.filter_kind.value,
                "target_size": request.target_size,
                **config.to_dict(),
            },
        )
    )

    before = walk_directory(root)
    observer.notify(
        JobEvent(
            INVENTORY_COMPLETE,
            root_text,
            {"phase": "pre", "files": len(before), "bytes": before.size},
        )
    )

    output_dir = None
    if config.output_mode is OutputMode.SUBDIRECTORY:
        output_dir = output_subdirectory(root, request, config)

    engine = BatchTransformEngine(config, observer=observer)
    batch = engine.run(before.files, request, output_dir=output_dir, cancel_event=cancel_event)

    after = walk_directory(output_dir if output_dir is not None else root)
    observer.notify(
        JobEvent(
            INVENTORY_COMPLETE,
            after.root,
            {"phase": "post", "files": len(after), "bytes": after.size},
        )
    )

    result = build_report(request, config.sizing_mode, before, after, batch)
    observer.notify(
        JobEvent(
            JOB_COMPLETE,
            root_text,
            {
                "status": result.status,
                "time": result.report.time,
                "size": result.report.size,
            },
        )
    )
    return result


__all__ = [
    "JobReport",
    "JobResult",
    "STATUS_ERROR",
    "STATUS_OK",
    "build_report",
    "format_size_text",
    "format_time_text",
    "run_scale_job",
]
