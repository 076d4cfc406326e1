"""Runs trials: reset, timed populate, timed verification, cleanup."""

from __future__ import annotations

import sys
from typing import Iterable, TextIO

from structlog import get_logger

from kv_bench.artifacts import ensure_present, remove_all, total_size
from kv_bench.core.clock import ClockSource
from kv_bench.core.errors import BenchmarkError, TrialError
from kv_bench.core.models import PhaseTiming, Trial, TrialResult, TrialState, trial_header

_logger = get_logger(__name__)


def _emit(out: TextIO, lines: Iterable[str]) -> None:
    for line in lines:
        print(line, file=out)
    out.flush()


class _TrialTracker:
    """Records state transitions of one trial and wraps phase failures."""

    def __init__(self, trial: Trial) -> None:
        self.trial = trial
        self.states: list[TrialState] = []
        self._logger = _logger.bind(
            candidate=trial.candidate.name,
            records=trial.records,
            lookups=trial.lookups,
        )

    @property
    def state(self) -> TrialState | None:
        return self.states[-1] if self.states else None

    def enter(self, state: TrialState) -> None:
        self.states.append(state)
        self._logger.debug("trial-state", state=state.value)

    def phase_finished(self, phase: str, timing: PhaseTiming) -> None:
        self._logger.info(
            "phase-finished",
            phase=phase,
            wall=round(timing.wall, 6),
            user=round(timing.user, 6),
            system=round(timing.system, 6),
            cpu_fallback=timing.cpu_fallback,
        )

    def fail(self, error: BenchmarkError, phase: str) -> TrialError:
        self.enter(TrialState.FAILED)
        self._logger.error("trial-failed", phase=phase, code=error.code, error=str(error))
        return TrialError(
            error,
            candidate=self.trial.candidate.name,
            records=self.trial.records,
            phase=phase,
        )


def run_trial(trial: Trial, *, clock: ClockSource | None = None, out: TextIO | None = None) -> TrialResult:
    """Runs one trial end to end and prints its report.

    Artifacts are removed before the trial and again afterwards, whether or
    not it succeeded. Any failure raises `TrialError`.
    """

    clock = clock or ClockSource()
    out = out or sys.stdout
    candidate = trial.candidate
    tracker = _TrialTracker(trial)

    _emit(out, trial_header(candidate.name, trial.records, trial.lookups))

    tracker.enter(TrialState.RESET)
    remove_all(candidate.artifacts())

    try:
        tracker.enter(TrialState.POPULATING)
        before = clock.snapshot()
        try:
            populated = candidate.populate(trial.records)
        except BenchmarkError as exc:
            raise tracker.fail(exc, "populating") from exc
        after = clock.snapshot()
        populate_timing = PhaseTiming.between(before, after, resolution=clock.resolution)
        tracker.phase_finished("populate", populate_timing)

        tracker.enter(TrialState.POPULATED)
        try:
            ensure_present(populated.artifacts)
            file_size = total_size(populated.artifacts)
        except BenchmarkError as exc:
            raise tracker.fail(exc, "measuring artifacts") from exc

        result = TrialResult(
            candidate=candidate.name,
            records=trial.records,
            lookups=trial.lookups,
            populate=populate_timing,
            data_size=populated.data_size,
            file_size=file_size,
            states=tracker.states,
        )
        _emit(out, result.populate_lines())

        tracker.enter(TrialState.LOOKING_UP)
        before = clock.snapshot()
        try:
            candidate.verify(trial.records, trial.lookups)
        except BenchmarkError as exc:
            raise tracker.fail(exc, "looking up") from exc
        after = clock.snapshot()
        result.lookup = PhaseTiming.between(before, after, resolution=clock.resolution)
        tracker.phase_finished("lookup", result.lookup)

        tracker.enter(TrialState.DONE)
        _emit(out, [*result.lookup_lines(), ""])
        return result
    finally:
        remove_all(candidate.artifacts())


def run_matrix(
    trials: Iterable[Trial],
    *,
    clock: ClockSource | None = None,
    out: TextIO | None = None,
) -> list[TrialResult]:
    """Runs trials strictly one after another; stops at the first failure."""

    clock = clock or ClockSource()
    results: list[TrialResult] = []
    for trial in trials:
        _logger.info("trial-started", candidate=trial.candidate.name, records=trial.records, lookups=trial.lookups)
        results.append(run_trial(trial, clock=clock, out=out))
    return results
