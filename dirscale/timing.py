"""
Wall-clock measurement and human-scaled duration formatting.

Durations are kept as integer nanoseconds and split into whole seconds plus
sub-second nanoseconds, which is what the formatting tiers are defined on.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

NANOS_PER_SECOND = 1_000_000_000


def format_duration(seconds: int, nanos: int) -> str:
    """
    Format a duration into a human-scaled string.

    All divisions truncate; nothing is rounded.

    Args:
        seconds: Whole seconds of the duration
        nanos: Sub-second part in nanoseconds (0 <= nanos < 1e9)

    Returns:
        Text such as "950 ns", "12 µs", "1 ms", "9.99 s" or "10 s"
    """
    if seconds < 0 or not (0 <= nanos < NANOS_PER_SECOND):
        raise ValueError(f"Invalid duration: {seconds}s {nanos}ns")

    if seconds == 0:
        if nanos < 1_000:
            return f"{nanos} ns"
        if nanos < 1_000_000:
            return f"{nanos // 1_000} µs"
        return f"{nanos // 1_000_000} ms"
    if seconds < 10:
        return f"{seconds}.{nanos // 10_000_000:02d} s"
    return f"{seconds} s"


@dataclass(frozen=True)
class Elapsed:
    """An elapsed wall-clock duration in nanoseconds."""

    nanos: int

    def __post_init__(self) -> None:
        if self.nanos < 0:
            raise ValueError(f"Elapsed time cannot be negative: {self.nanos}")

    @classmethod
    def from_nanos(cls, nanos: int) -> "Elapsed":
        return cls(int(nanos))

    @classmethod
    def since(cls, start_ns: int) -> "Elapsed":
        """Measure from a ``time.perf_counter_ns()`` reading until now."""
        return cls(max(0, time.perf_counter_ns() - start_ns))

    @property
    def seconds(self) -> int:
        return self.nanos // NANOS_PER_SECOND

    @property
    def subsec_nanos(self) -> int:
        return self.nanos % NANOS_PER_SECOND

    def __str__(self) -> str:
        return format_duration(self.seconds, self.subsec_nanos)


class Stopwatch:
    """Context manager measuring the wall time of its body."""

    def __init__(self) -> None:
        self._start_ns: Optional[int] = None
        self.elapsed: Optional[Elapsed] = None

    def __enter__(self) -> "Stopwatch":
        self._start_ns = time.perf_counter_ns()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._start_ns is None:
            raise RuntimeError("Stopwatch exited without being entered")
        self.elapsed = Elapsed.since(self._start_ns)


__all__ = ["Elapsed", "Stopwatch", "format_duration", "NANOS_PER_SECOND"]
