"""Wall-clock and process CPU-time sources."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import psutil

NANOS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True, slots=True)
class ClockSnapshot:
    """Point-in-time reading of both clocks.

    Wall time is kept as integer nanoseconds so differences never lose
    sub-second precision; CPU times are cumulative seconds for the process.
    """

    wall_ns: int
    user: float
    system: float


def duration(start_ns: int, end_ns: int) -> float:
    """Elapsed seconds between two nanosecond wall readings."""

    seconds, remainder = divmod(int(end_ns) - int(start_ns), NANOS_PER_SECOND)
    return seconds + remainder / NANOS_PER_SECOND


def _psutil_cpu_times() -> tuple[float, float]:
    times = psutil.Process().cpu_times()
    return float(times.user), float(times.system)


class ClockSource:
    """Reads the monotonic wall clock and the process CPU clock.

    With `split_cpu=False` the CPU reader is treated as a combined counter and
    the system component is reported as zero.
    """

    def __init__(
        self,
        *,
        cpu_reader: Callable[[], tuple[float, float]] | None = None,
        wall_reader: Callable[[], int] | None = None,
        split_cpu: bool = True,
    ) -> None:
        self._cpu_reader = cpu_reader or _psutil_cpu_times
        self._wall_reader = wall_reader or time.perf_counter_ns
        self.split_cpu = split_cpu

    @property
    def resolution(self) -> float:
        """Smallest wall interval the clock can distinguish, in seconds."""

        return time.get_clock_info("perf_counter").resolution

    def now(self) -> int:
        return int(self._wall_reader())

    def process_cpu_time(self) -> tuple[float, float]:
        user, system = self._cpu_reader()
        if not self.split_cpu:
            return user + system, 0.0
        return user, system

    def snapshot(self) -> ClockSnapshot:
        user, system = self.process_cpu_time()
        return ClockSnapshot(wall_ns=self.now(), user=user, system=system)
