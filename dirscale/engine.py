"""
Batch transform engine.

Applies one geometric scaling transform to every file in a work list using a
bounded thread pool. Each file is owned by exactly one worker for its whole
decode, resize and encode lifetime, and yields its own FileOutcome; a failing
file never aborts the others.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from PIL import Image

from .config import (
    EngineConfig,
    FormatPolicy,
    OutputMode,
    ScaleDirection,
    ScaleRequest,
    SizingMode,
)
from .errors import OutputDirectoryError, TransformError
from .events import FANOUT_COMPLETE, FILE_FAILED, JobEvent, JobObserver, LoggingObserver
from .filters import resize_image
from .timing import Elapsed, Stopwatch

logger = logging.getLogger(__name__)

# Pillow refuses to write alpha or palette data as JPEG
_JPEG_MODES = {"1", "L", "RGB", "CMYK"}
# Non-RGB colour spaces most writers reject; CMYK survives only in these
_COLOUR_SPACE_MODES = {"CMYK", "YCbCr", "LAB", "HSV"}
_CMYK_FORMATS = {"TIFF"}

_UNIT_ERRORS = (OSError, ValueError, TransformError, Image.DecompressionBombError)


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FileOutcome:
    """Result of transforming one file."""

    path: str
    status: OutcomeStatus
    reason: Optional[str] = None
    output_path: Optional[str] = None
    source_format: Optional[str] = None
    native_size: Optional[Tuple[int, int]] = None
    target_size: Optional[Tuple[int, int]] = None


@dataclass
class BatchResult:
    """All per-file outcomes of one fan-out plus its wall time."""

    outcomes: List[FileOutcome] = field(default_factory=list)
    elapsed: Elapsed = field(default_factory=lambda: Elapsed(0))
    output_dir: Optional[str] = None

    @property
    def succeeded(self) -> List[str]:
        return [o.path for o in self.outcomes if o.status is OutcomeStatus.SUCCEEDED]

    @property
    def failed(self) -> List[Tuple[str, str]]:
        return [
            (o.path, o.reason or "unknown error")
            for o in self.outcomes
            if o.status is OutcomeStatus.FAILED
        ]

    @property
    def cancelled(self) -> List[str]:
        return [o.path for o in self.outcomes if o.status is OutcomeStatus.CANCELLED]

    @property
    def ok(self) -> bool:
        return all(o.status is OutcomeStatus.SUCCEEDED for o in self.outcomes)


def compute_target_size(
    native: Tuple[int, int], request: ScaleRequest, sizing_mode: SizingMode
) -> Tuple[int, int]:
    """
    Compute output dimensions for an image of ``native`` (width, height).

    Shrinking uses integer division, so a factor that does not divide a side
    evenly drops the remainder.

    Raises:
        TransformError: If a dimension would collapse to zero
    """
    width, height = native
    if sizing_mode is SizingMode.FIXED_TARGET:
        if request.target_size is None:
            raise TransformError("Fixed-target sizing requires a target size")
        target = (request.target_size, request.target_size)
    elif request.direction is ScaleDirection.DOWN:
        target = (width // request.factor, height // request.factor)
    else:
        target = (width * request.factor, height * request.factor)

    if target[0] <= 0 or target[1] <= 0:
        raise TransformError(
            f"Scaling {width}x{height} by 1/{request.factor} leaves no pixels"
        )
    return target


def output_subdirectory(
    root: Union[str, Path], request: ScaleRequest, config: EngineConfig
) -> Path:
    """Name of the subdirectory that receives output in subdirectory mode."""
    if config.sizing_mode is SizingMode.FIXED_TARGET:
        return Path(root) / f"scaled-{request.target_size}"
    return Path(root) / f"scaled-{request.direction.value}-{request.factor}"


class BatchTransformEngine:
    """Resizes a list of image files in parallel."""

    def __init__(
        self, config: Optional[EngineConfig] = None, observer: Optional[JobObserver] = None
    ):
        """
        Initialize the engine.

        Args:
            config: Operating configuration (defaults to the in-place ratio variant)
            observer: Receives fan-out events (defaults to logging them)
        """
        self.config = config or EngineConfig()
        self.observer = observer or LoggingObserver()

    def run(
        self,
        files: Sequence[str],
        request: ScaleRequest,
        output_dir: Optional[Union[str, Path]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchResult:
        """
        Transform every file and wait for all of them to finish.

        Args:
            files: Paths of regular files to transform
            request: Scale direction, factor, filter and optional target size
            output_dir: Destination directory, required in subdirectory mode
            cancel_event: When set, units that have not started are skipped

        Returns:
            BatchResult with one outcome per input file, in input order

        Raises:
            OutputDirectoryError: If the output subdirectory cannot be created
        """
        destination: Optional[Path] = None
        if self.config.output_mode is OutputMode.SUBDIRECTORY:
            if output_dir is None:
                raise ValueError("Subdirectory output mode requires output_dir")
            destination = Path(output_dir)
            self._ensure_output_dir(destination)

        workers = max(1, min(self.config.max_workers, len(files)))
        outcomes: List[FileOutcome] = []
        with Stopwatch() as watch:
            if files:
                with ThreadPoolExecutor(
                    max_workers=workers, thread_name_prefix="dirscale"
                ) as pool:
                    futures = [
                        pool.submit(
                            self._transform_file, path, request, destination, cancel_event
                        )
                        for path in files
                    ]
                    outcomes = [future.result() for future in futures]
        elapsed = watch.elapsed

        result = BatchResult(
            outcomes=outcomes,
            elapsed=elapsed,
            output_dir=str(destination) if destination is not None else None,
        )
        root = str(destination) if destination is not None else _common_root(files)
        for path, reason in result.failed:
            self.observer.notify(
                JobEvent(FILE_FAILED, root, {"path": path, "reason": reason})
            )
        self.observer.notify(
            JobEvent(
                FANOUT_COMPLETE,
                root,
                {
                    "files": len(outcomes),
                    "succeeded": len(result.succeeded),
                    "failed": len(result.failed),
                    "cancelled": len(result.cancelled),
                    "workers": workers,
                    "elapsed": str(elapsed),
                },
            )
        )
        return result

    def _ensure_output_dir(self, path: Path) -> None:
        try:
            path.mkdir(exist_ok=True)
        except OSError as exc:
            raise OutputDirectoryError(path, exc.strerror or str(exc)) from exc
        if not path.is_dir():
            raise OutputDirectoryError(path, "exists and is not a directory")

    def _transform_file(
        self,
        path: str,
        request: ScaleRequest,
        output_dir: Optional[Path],
        cancel_event: Optional[threading.Event],
    ) -> FileOutcome:
        if cancel_event is not None and cancel_event.is_set():
            return FileOutcome(path=path, status=OutcomeStatus.CANCELLED)

        source_format = None
        native = None
        target = None
        try:
            with Image.open(path) as image:
                # Fully decode before the source may be truncated below
                image.load()
                source_format = image.format
                native = image.size
                target = compute_target_size(native, request, self.config.sizing_mode)
                resized = resize_image(image, target, request.filter_kind)

            if self.config.format_policy is FormatPolicy.FIXED:
                out_format = self.config.target_format
            else:
                out_format = source_format
            if not out_format:
                raise TransformError("Image format could not be determined")

            if output_dir is None:
                out_path = Path(path)
            else:
                out_path = output_dir / Path(path).name
            _encode(resized, out_path, out_format)
        except _UNIT_ERRORS as exc:
            logger.debug("Transform failed for %s: %s", path, exc)
            return FileOutcome(
                path=path,
                status=OutcomeStatus.FAILED,
                reason=f"{type(exc).__name__}: {exc}",
                source_format=source_format,
                native_size=native,
                target_size=target,
            )

        return FileOutcome(
            path=path,
            status=OutcomeStatus.SUCCEEDED,
            output_path=str(out_path),
            source_format=source_format,
            native_size=native,
            target_size=target,
        )


def _encode(image: Image.Image, out_path: Path, out_format: str) -> None:
    Image.init()
    if out_format not in Image.SAVE:
        raise TransformError(f"Pillow cannot encode {out_format}")

    if out_format == "JPEG":
        if image.mode not in _JPEG_MODES:
            image = image.convert("RGB")
    elif image.mode in _COLOUR_SPACE_MODES:
        if not (image.mode == "CMYK" and out_format in _CMYK_FORMATS):
            image = image.convert("RGB")
    image.save(out_path, format=out_format)


def _common_root(files: Sequence[str]) -> str:
    if not files:
        return ""
    return str(Path(files[0]).parent)


__all__ = [
    "BatchResult",
    "BatchTransformEngine",
    "FileOutcome",
    "OutcomeStatus",
    "compute_target_size",
    "output_subdirectory",
]
