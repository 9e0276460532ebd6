"""
Directory inventory: the regular files directly inside one directory and
their total byte size.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

from .errors import InventoryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectorySnapshot:
    """Files found one level deep under ``root`` and their summed size.

    ``files`` keeps the directory-listing order, which is platform-defined;
    callers must not rely on it being sorted.
    """

    root: str
    files: Tuple[str, ...]
    file_sizes: Tuple[int, ...]

    @property
    def size(self) -> int:
        return sum(self.file_sizes)

    @property
    def size_text(self) -> str:
        return f"{self.size} bytes"

    def __len__(self) -> int:
        return len(self.files)


def walk_directory(dir_path: Union[str, Path]) -> DirectorySnapshot:
    """
    Inventory the regular files directly inside ``dir_path``.

    Subdirectories and other non-file entries are skipped entirely: they are
    neither listed nor counted towards the size. Symlinks to regular files
    count as files.

    Args:
        dir_path: Directory to list (not recursed into)

    Returns:
        DirectorySnapshot with absolute file paths and per-file sizes

    Raises:
        InventoryError: If the directory or any entry's metadata is unreadable
    """
    root = Path(dir_path).absolute()
    files: List[str] = []
    sizes: List[int] = []

    try:
        with os.scandir(root) as entries:
            for entry in entries:
                try:
                    if not entry.is_file():
                        continue
                    size = entry.stat().st_size
                except OSError as exc:
                    raise InventoryError(entry.path, exc.strerror or str(exc)) from exc
                files.append(entry.path)
                sizes.append(size)
    except InventoryError:
        raise
    except OSError as exc:
        raise InventoryError(root, exc.strerror or str(exc)) from exc

    logger.debug("Inventoried %d files (%d bytes) in %s", len(files), sum(sizes), root)
    return DirectorySnapshot(root=str(root), files=tuple(files), file_sizes=tuple(sizes))


__all__ = ["DirectorySnapshot", "walk_directory"]
