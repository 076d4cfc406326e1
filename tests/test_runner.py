"""Tests for the trial runner and the trial matrix."""

from __future__ import annotations

import io
import math

import pytest

from kv_bench.benchmarks import MATRIX, default_matrix, run_matrix, run_trial
from kv_bench.candidates import DumbDbmCandidate, LmdbCandidate, build_candidates
from kv_bench.core.errors import ArtifactError, BackendError, TrialError, VerificationError
from kv_bench.core.models import Trial, TrialState

from tests.fakes import InMemoryCandidate, frozen_clock


def test_lmdb_end_to_end_thousand_records_million_lookups(workdir) -> None:
    candidate = LmdbCandidate(workdir)
    out = io.StringIO()

    result = run_trial(Trial(candidate=candidate, records=1000, lookups=1_000_000), out=out)

    assert result.records == 1000
    assert result.lookups == 1_000_000
    assert result.data_size > 0
    assert result.file_size > 0
    assert math.isfinite(result.puts_per_cpu_second) and result.puts_per_cpu_second > 0
    assert math.isfinite(result.lookups_per_cpu_second) and result.lookups_per_cpu_second > 0
    assert result.states == [
        TrialState.RESET,
        TrialState.POPULATING,
        TrialState.POPULATED,
        TrialState.LOOKING_UP,
        TrialState.DONE,
    ]
    assert not any(path.exists() for path in candidate.artifacts())

    text = out.getvalue()
    assert "Testing bulk insert of 1000 elements and 1000000 random lookups" in text
    assert "  Candidate: LMDB uncompressed" in text
    assert "throughput (puts/cpusec):" in text
    assert "throughput (lookups/cpusec):" in text


def test_split_file_trial_leaves_empty_workdir(workdir) -> None:
    candidate = DumbDbmCandidate(workdir)

    result = run_trial(Trial(candidate=candidate, records=1000, lookups=1000), out=io.StringIO())

    assert result.states[-1] is TrialState.DONE
    assert result.file_size > 0
    assert list(workdir.iterdir()) == []


def test_report_has_one_line_per_metric(workdir) -> None:
    out = io.StringIO()
    clock = frozen_clock(wall_step_ns=1_000_000, cpu_step=0.01)

    run_trial(Trial(candidate=InMemoryCandidate(workdir), records=10, lookups=10), clock=clock, out=out)

    labels = [line.split(":")[0].strip() for line in out.getvalue().splitlines() if line.startswith("    ")]
    assert labels == [
        "creation time (wall)",
        "creation time (ucpu)",
        "creation time (scpu)",
        "throughput (puts/cpusec)",
        "data size",
        "file size",
        "lookup time (wall)",
        "lookup time (ucpu)",
        "lookup time (scpu)",
        "throughput (lookups/cpusec)",
    ]
    assert out.getvalue().endswith("\n\n")


def test_stale_artifacts_are_reset_before_populate(workdir) -> None:
    candidate = InMemoryCandidate(workdir)
    stale = candidate.artifacts()[0]
    stale.write_text("stale", encoding="utf-8")

    class _Checking(InMemoryCandidate):
        def populate(self, records):
            assert not stale.exists()
            return super().populate(records)

    run_trial(Trial(candidate=_Checking(workdir), records=5, lookups=5), out=io.StringIO())
    assert not stale.exists()


def test_cpu_fallback_to_wall_is_explicit(workdir) -> None:
    out = io.StringIO()
    clock = frozen_clock(wall_step_ns=2_000_000, cpu_step=0.0)

    result = run_trial(Trial(candidate=InMemoryCandidate(workdir), records=100, lookups=100), clock=clock, out=out)

    assert result.populate.cpu_fallback
    assert math.isfinite(result.puts_per_cpu_second) and result.puts_per_cpu_second > 0
    assert "(wall fallback)" in out.getvalue()


def test_zero_wall_and_cpu_still_yields_finite_throughput(workdir) -> None:
    clock = frozen_clock(wall_step_ns=0, cpu_step=0.0)

    result = run_trial(Trial(candidate=InMemoryCandidate(workdir), records=1, lookups=1), clock=clock, out=io.StringIO())

    assert math.isfinite(result.puts_per_cpu_second) and result.puts_per_cpu_second > 0
    assert math.isfinite(result.lookups_per_cpu_second) and result.lookups_per_cpu_second > 0


def test_corrupted_value_aborts_with_offending_key(workdir) -> None:
    candidate = InMemoryCandidate(workdir, corrupt={42: b"value_"})

    with pytest.raises(TrialError) as info:
        run_trial(Trial(candidate=candidate, records=1000, lookups=100_000), out=io.StringIO())

    error = info.value
    assert error.phase == "looking up"
    assert error.candidate == "in-memory"
    assert error.records == 1000
    assert isinstance(error.cause, VerificationError)
    assert error.cause.key == "key_000000042"
    assert error.cause.index == 42
    assert error.code == 1
    assert not any(path.exists() for path in candidate.artifacts())


def test_backend_error_code_is_propagated(workdir) -> None:
    candidate = InMemoryCandidate(workdir, fail_on={42: 7})

    with pytest.raises(TrialError) as info:
        run_trial(Trial(candidate=candidate, records=1000, lookups=100_000), out=io.StringIO())

    assert info.value.code == 7
    assert isinstance(info.value.cause, BackendError)


def test_populate_failure_is_surfaced_with_trial_context(workdir) -> None:
    candidate = InMemoryCandidate(workdir, populate_error=BackendError("disk full", code=28))
    out = io.StringIO()

    with pytest.raises(TrialError) as info:
        run_trial(Trial(candidate=candidate, records=10, lookups=10), out=out)

    assert info.value.phase == "populating"
    assert info.value.code == 28
    assert "in-memory (n=10)" in str(info.value)
    assert "creation time" not in out.getvalue()


def test_missing_artifact_after_populate_is_fatal(workdir) -> None:
    candidate = InMemoryCandidate(workdir, skip_artifacts=True)

    with pytest.raises(TrialError) as info:
        run_trial(Trial(candidate=candidate, records=10, lookups=10), out=io.StringIO())

    assert isinstance(info.value.cause, ArtifactError)
    assert info.value.phase == "measuring artifacts"


def test_matrix_runs_sequentially_and_stops_at_first_failure(workdir) -> None:
    good = InMemoryCandidate(workdir / "good")
    bad = InMemoryCandidate(workdir / "bad", corrupt={0: b"nope"})
    never = InMemoryCandidate(workdir / "never")
    trials = [
        Trial(candidate=good, records=10, lookups=10),
        Trial(candidate=bad, records=1, lookups=10),
        Trial(candidate=never, records=10, lookups=10),
    ]

    with pytest.raises(TrialError):
        run_matrix(trials, out=io.StringIO())

    assert good.populate_calls == 1
    assert bad.populate_calls == 1
    assert never.populate_calls == 0


def test_trial_rejects_non_positive_counts(workdir) -> None:
    candidate = InMemoryCandidate(workdir)
    with pytest.raises(ValueError):
        Trial(candidate=candidate, records=0, lookups=1)
    with pytest.raises(ValueError):
        Trial(candidate=candidate, records=1, lookups=0)


def test_default_matrix_order_and_scales(workdir) -> None:
    trials = default_matrix(build_candidates(workdir), lookups=1_000_000)

    expected = [(name, n) for name, scales in MATRIX for n in scales]
    assert [(t.candidate.name, t.records) for t in trials] == expected
    assert [t.records for t in trials[:4]] == [1_000, 1_000_000, 10_000_000, 100_000_000]
    assert all(t.lookups == 1_000_000 for t in trials)


def test_default_matrix_requires_registered_candidates(workdir) -> None:
    with pytest.raises(KeyError):
        default_matrix({}, lookups=1)
