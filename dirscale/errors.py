"""Exception hierarchy for directory scaling jobs."""

from __future__ import annotations

from pathlib import Path
from typing import Union


class ScaleJobError(Exception):
    """Base class for failures that abort a whole scaling job."""


class InventoryError(ScaleJobError):
    """Raised when a directory (or one of its entries) cannot be inventoried."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot inventory {self.path}: {reason}")


class OutputDirectoryError(ScaleJobError):
    """Raised when the output subdirectory cannot be created."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot create output directory {self.path}: {reason}")


class TransformError(Exception):
    """Raised for a single file that cannot be decoded, resized or encoded.

    Never escapes the engine: it is captured into that file's outcome.
    """
