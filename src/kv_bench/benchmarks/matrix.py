"""The fixed trial matrix."""

from __future__ import annotations

from typing import Mapping

from kv_bench.candidates import Candidate, DumbDbmCandidate, LmdbCandidate, LmdbIntegerKeyCandidate
from kv_bench.core.models import Trial

FULL_SCALES = (1_000, 1_000_000, 10_000_000, 100_000_000)
# dbm.dumb keeps its whole index in memory and aligns every value to 512 bytes
SPLIT_FILE_SCALES = (1_000, 1_000_000)

MATRIX: tuple[tuple[str, tuple[int, ...]], ...] = (
    (LmdbCandidate.name, FULL_SCALES),
    (LmdbIntegerKeyCandidate.name, FULL_SCALES),
    (DumbDbmCandidate.name, SPLIT_FILE_SCALES),
)


def default_matrix(candidates: Mapping[str, Candidate], *, lookups: int = 1_000_000) -> list[Trial]:
    """Expands `MATRIX` into trials, in execution order."""

    trials: list[Trial] = []
    for name, scales in MATRIX:
        candidate = candidates.get(name)
        if candidate is None:
            raise KeyError(f"candidate not registered: {name}")
        trials.extend(Trial(candidate=candidate, records=records, lookups=lookups) for records in scales)
    return trials
