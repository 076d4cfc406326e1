"""Data models for trials, phase timings and trial results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from .clock import ClockSnapshot, duration

if TYPE_CHECKING:
    from kv_bench.candidates.base import Candidate


class TrialState(str, Enum):
    """Lifecycle of a single trial."""

    RESET = "reset"
    POPULATING = "populating"
    POPULATED = "populated"
    LOOKING_UP = "looking_up"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Trial:
    """One (candidate, record count, lookup count) combination."""

    candidate: "Candidate"
    records: int
    lookups: int

    def __post_init__(self) -> None:
        if self.records <= 0:
            raise ValueError("record count must be positive")
        if self.lookups <= 0:
            raise ValueError("lookup count must be positive")


@dataclass(frozen=True, slots=True)
class PopulateResult:
    """What a candidate reports after a bulk load."""

    artifacts: tuple[Path, ...]
    data_size: int


@dataclass(frozen=True, slots=True)
class PhaseTiming:
    """Wall and CPU durations of one phase."""

    wall: float
    user: float
    system: float
    resolution: float = 1e-9

    @classmethod
    def between(cls, start: ClockSnapshot, end: ClockSnapshot, *, resolution: float = 1e-9) -> "PhaseTiming":
        return cls(
            wall=duration(start.wall_ns, end.wall_ns),
            user=max(end.user - start.user, 0.0),
            system=max(end.system - start.system, 0.0),
            resolution=resolution,
        )

    @property
    def cpu(self) -> float:
        return self.user + self.system

    @property
    def cpu_fallback(self) -> bool:
        """True when the CPU interval was too short to measure."""

        return self.cpu <= 0.0

    def denominator(self) -> float:
        """Seconds used for throughput: CPU, else wall, else clock resolution."""

        if not self.cpu_fallback:
            return self.cpu
        if self.wall > 0.0:
            return self.wall
        return max(self.resolution, 1e-9)

    def throughput(self, count: int) -> float:
        value = int(count) / self.denominator()
        if not math.isfinite(value) or value <= 0.0:
            raise ValueError(f"non-finite throughput for count={count}")
        return value


@dataclass(slots=True)
class TrialResult:
    """Metrics of a completed trial."""

    candidate: str
    records: int
    lookups: int
    populate: PhaseTiming
    lookup: Optional[PhaseTiming] = None
    data_size: int = 0
    file_size: int = 0
    states: List[TrialState] = field(default_factory=list)

    @property
    def puts_per_cpu_second(self) -> float:
        return self.populate.throughput(self.records)

    @property
    def lookups_per_cpu_second(self) -> float:
        if self.lookup is None:
            raise ValueError("lookup phase has not run")
        return self.lookup.throughput(self.lookups)

    def populate_lines(self) -> list[str]:
        timing = self.populate
        return [
            f"    creation time (wall):     {timing.wall:.6f}",
            f"    creation time (ucpu):     {timing.user:.6f}",
            f"    creation time (scpu):     {timing.system:.6f}",
            f"    throughput (puts/cpusec): {self.puts_per_cpu_second:.2f}{_fallback_note(timing)}",
            f"    data size:                {self.data_size}",
            f"    file size:                {self.file_size}",
        ]

    def lookup_lines(self) -> list[str]:
        timing = self.lookup
        if timing is None:
            return []
        return [
            f"    lookup time (wall):          {timing.wall:.6f}",
            f"    lookup time (ucpu):          {timing.user:.6f}",
            f"    lookup time (scpu):          {timing.system:.6f}",
            f"    throughput (lookups/cpusec): {self.lookups_per_cpu_second:.2f}{_fallback_note(timing)}",
        ]


def _fallback_note(timing: PhaseTiming) -> str:
    return " (wall fallback)" if timing.cpu_fallback else ""


def trial_header(candidate: str, records: int, lookups: int) -> list[str]:
    return [
        f"Testing bulk insert of {records} elements and {lookups} random lookups",
        f"  Candidate: {candidate}",
    ]
