"""Command-line entry point: runs the fixed trial matrix."""

from __future__ import annotations

import logging
import sys
from typing import Sequence, TextIO

import structlog

from kv_bench.benchmarks import default_matrix, run_matrix
from kv_bench.candidates import build_candidates
from kv_bench.core.clock import ClockSource
from kv_bench.core.errors import BenchmarkError, describe_failure
from kv_bench.core.models import Trial
from kv_bench.shared import BenchConfig, configure_logging, write_error_report


def _build_trials(config: BenchConfig) -> list[Trial]:
    candidates = build_candidates(
        config.workspace_dir,
        batch_size=config.batch_size,
        seed=config.seed,
        map_size_factor=config.map_size_factor,
        min_map_size=config.min_map_size,
    )
    return default_matrix(candidates, lookups=config.lookups)


def run(
    config: BenchConfig,
    *,
    trials: Sequence[Trial] | None = None,
    clock: ClockSource | None = None,
    out: TextIO | None = None,
) -> int:
    """Runs every trial; returns 0, or the code of the first fatal error."""

    logger = structlog.get_logger(__name__)
    out = out or sys.stdout
    trials = list(trials) if trials is not None else _build_trials(config)

    logger.info("benchmark-started", trials=len(trials), workspace=str(config.workspace_dir), seed=config.seed)
    try:
        results = run_matrix(trials, clock=clock, out=out)
    except BenchmarkError as exc:
        print(describe_failure(exc), file=out)
        out.flush()
        try:
            report = write_error_report(exc, where="kv_bench.cli.run", context={"trials": len(trials)})
        except OSError as report_exc:
            logger.warning("error-report-failed", error=str(report_exc))
        else:
            logger.error("benchmark-aborted", code=exc.code, report=str(report.path))
        return exc.code

    logger.info("benchmark-complete", trials=len(results))
    return 0


def main() -> int:
    config = BenchConfig.from_env()
    configure_logging(level=logging.DEBUG if config.verbose else logging.INFO)
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
