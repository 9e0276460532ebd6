"""
Bulk image scaling for a single directory.

Inventories a directory, resizes every image in it with a bounded thread
pool, and reports elapsed time and the before/after directory size.
"""

from .config import (
    EngineConfig,
    FormatPolicy,
    JobSettings,
    OutputMode,
    ScaleDirection,
    ScaleRequest,
    SizingMode,
)
from .engine import BatchResult, BatchTransformEngine, FileOutcome, OutcomeStatus
from .errors import InventoryError, OutputDirectoryError, ScaleJobError, TransformError
from .filters import FilterKind, parse_filter
from .handler import handle_event
from .inventory import DirectorySnapshot, walk_directory
from .report import JobReport, JobResult, run_scale_job
from .timing import Elapsed, format_duration

__all__ = [
    "BatchResult",
    "BatchTransformEngine",
    "DirectorySnapshot",
    "Elapsed",
    "EngineConfig",
    "FileOutcome",
    "FilterKind",
    "FormatPolicy",
    "InventoryError",
    "JobReport",
    "JobResult",
    "JobSettings",
    "OutcomeStatus",
    "OutputDirectoryError",
    "OutputMode",
    "ScaleDirection",
    "ScaleJobError",
    "ScaleRequest",
    "SizingMode",
    "TransformError",
    "format_duration",
    "handle_event",
    "parse_filter",
    "run_scale_job",
    "walk_directory",
]
