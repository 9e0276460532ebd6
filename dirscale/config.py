"""
Configuration management for directory scaling jobs.

This module provides structured configuration classes for the scaling engine
with validation and type safety. The two historical operating variants
(in-place ratio scaling and fixed-size output into a subdirectory) are presets
of one EngineConfig rather than separate code paths.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from .filters import FilterKind, parse_filter

DEFAULT_MOUNT_ROOT = "/mnt/efs"
DEFAULT_TARGET_FORMAT = "PNG"

E = TypeVar("E", bound=Enum)


class ScaleDirection(str, Enum):
    """Whether native dimensions are multiplied or divided."""

    UP = "up"
    DOWN = "down"


class OutputMode(str, Enum):
    IN_PLACE = "in_place"
    SUBDIRECTORY = "subdirectory"


class SizingMode(str, Enum):
    RATIO = "ratio"
    FIXED_TARGET = "fixed_target"


class FormatPolicy(str, Enum):
    PRESERVE_SOURCE = "preserve_source"
    FIXED = "fixed"


def _default_max_workers() -> int:
    return min(32, os.cpu_count() or 1)


@dataclass(frozen=True)
class ScaleRequest:
    """A single scaling request, consumed once per job."""

    direction: ScaleDirection
    factor: int = 1
    filter_kind: FilterKind = FilterKind.GAUSSIAN
    target_size: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate request values."""
        if not isinstance(self.direction, ScaleDirection):
            object.__setattr__(
                self, "direction", _coerce_enum(ScaleDirection, self.direction)
            )
        if not isinstance(self.filter_kind, FilterKind):
            object.__setattr__(self, "filter_kind", parse_filter(self.filter_kind))

        if isinstance(self.factor, bool) or not isinstance(self.factor, int):
            raise ValueError(f"Scale factor must be an integer, got {self.factor!r}")
        if self.factor < 1:
            raise ValueError(f"Scale factor must be >= 1, got {self.factor}")
        if self.target_size is not None and self.target_size < 1:
            raise ValueError(f"Target size must be >= 1, got {self.target_size}")


@dataclass
class EngineConfig:
    """
    Operating configuration of the batch transform engine.

    Attributes:
        output_mode: Overwrite sources, or write into a new subdirectory
        sizing_mode: Multiply/divide native dimensions, or use a fixed side
        format_policy: Re-encode as the decoded format, or as target_format
        target_format: Pillow format name used by the fixed format policy
        max_workers: Upper bound on files decoded concurrently
    """

    output_mode: OutputMode = OutputMode.IN_PLACE
    sizing_mode: SizingMode = SizingMode.RATIO
    format_policy: FormatPolicy = FormatPolicy.PRESERVE_SOURCE
    target_format: str = DEFAULT_TARGET_FORMAT
    max_workers: int = field(default_factory=_default_max_workers)

    def __post_init__(self) -> None:
        """Validate and normalize configuration."""
        self.output_mode = _coerce_enum(OutputMode, self.output_mode)
        self.sizing_mode = _coerce_enum(SizingMode, self.sizing_mode)
        self.format_policy = _coerce_enum(FormatPolicy, self.format_policy)

        if self.max_workers is None or int(self.max_workers) <= 0:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        self.max_workers = int(self.max_workers)

        self.target_format = (self.target_format or "").strip().upper()
        if self.format_policy is FormatPolicy.FIXED and not self.target_format:
            raise ValueError("A fixed format policy requires target_format")

    @classmethod
    def ratio_variant(cls, **overrides: Any) -> "EngineConfig":
        """In-place ratio scaling that keeps each file's own format."""
        values: Dict[str, Any] = {
            "output_mode": OutputMode.IN_PLACE,
            "sizing_mode": SizingMode.RATIO,
            "format_policy": FormatPolicy.PRESERVE_SOURCE,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def fixed_target_variant(cls, **overrides: Any) -> "EngineConfig":
        """Fixed-size output written as PNG into a ``scaled-<size>`` subdirectory."""
        values: Dict[str, Any] = {
            "output_mode": OutputMode.SUBDIRECTORY,
            "sizing_mode": SizingMode.FIXED_TARGET,
            "format_policy": FormatPolicy.FIXED,
            "target_format": DEFAULT_TARGET_FORMAT,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, object] | None) -> "EngineConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Configuration mapping (can be None)

        Returns:
            EngineConfig instance
        """
        if not config_dict:
            return cls()

        allowed = {
            "output_mode",
            "sizing_mode",
            "format_policy",
            "target_format",
            "max_workers",
        }
        unexpected = set(config_dict) - allowed
        if unexpected:
            raise ValueError(
                f"Unsupported engine configuration keys: {sorted(unexpected)}"
            )
        return cls(**dict(config_dict))  # type: ignore[arg-type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output_mode": self.output_mode.value,
            "sizing_mode": self.sizing_mode.value,
            "format_policy": self.format_policy.value,
            "target_format": self.target_format,
            "max_workers": self.max_workers,
        }


@dataclass
class JobSettings:
    """Process-level settings for the trigger handler and CLI."""

    mount_root: Union[str, Path] = DEFAULT_MOUNT_ROOT
    engine: EngineConfig = field(default_factory=EngineConfig)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.mount_root = Path(self.mount_root)
        self.log_level = str(self.log_level).upper()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "JobSettings":
        """
        Build settings from ``DIRSCALE_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            JobSettings instance
        """
        env = os.environ if environ is None else environ

        engine_values: Dict[str, object] = {}
        for key in ("output_mode", "sizing_mode", "format_policy", "target_format"):
            value = env.get(f"DIRSCALE_{key.upper()}")
            if value:
                engine_values[key] = value
        workers = env.get("DIRSCALE_MAX_WORKERS")
        if workers:
            try:
                engine_values["max_workers"] = int(workers)
            except ValueError:
                raise ValueError(
                    f"DIRSCALE_MAX_WORKERS must be an integer, got {workers!r}"
                ) from None

        return cls(
            mount_root=env.get("DIRSCALE_MOUNT_ROOT") or DEFAULT_MOUNT_ROOT,
            engine=EngineConfig.from_dict(engine_values),
            log_level=env.get("DIRSCALE_LOG_LEVEL") or "INFO",
        )

    def resolve_root(self, directory: str) -> Path:
        """Resolve a payload directory against the mount root."""
        path = Path(directory)
        if path.is_absolute():
            return path
        return Path(self.mount_root) / path


def _coerce_enum(enum_cls: Type[E], value: object) -> E:
    """Accept an enum member or its (case-insensitive) string value."""

    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    choices = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"Invalid {enum_cls.__name__} {value!r}; expected one of: {choices}")


__all__ = [
    "EngineConfig",
    "FormatPolicy",
    "JobSettings",
    "OutputMode",
    "ScaleDirection",
    "ScaleRequest",
    "SizingMode",
]
