"""Benchmarked storage backends."""

from __future__ import annotations

from pathlib import Path

from .base import Candidate, ValueReader
from .dumb_dbm import DumbDbmCandidate
from .lmdb_store import LmdbCandidate, LmdbIntegerKeyCandidate

__all__ = [
	"Candidate",
	"ValueReader",
	"DumbDbmCandidate",
	"LmdbCandidate",
	"LmdbIntegerKeyCandidate",
	"build_candidates",
]


def build_candidates(
    directory: Path,
    *,
    batch_size: int = 1000,
    seed: int = 1,
    map_size_factor: int = 128,
    min_map_size: int = 1 << 20,
) -> dict[str, Candidate]:
    """Creates the active candidate set, keyed by candidate name."""

    lmdb_options = dict(
        batch_size=batch_size,
        seed=seed,
        map_size_factor=map_size_factor,
        min_map_size=min_map_size,
    )
    candidates: list[Candidate] = [
        LmdbCandidate(directory, **lmdb_options),
        LmdbIntegerKeyCandidate(directory, **lmdb_options),
        DumbDbmCandidate(directory, batch_size=batch_size, seed=seed),
    ]
    return {candidate.name: candidate for candidate in candidates}
