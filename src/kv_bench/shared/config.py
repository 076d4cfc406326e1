"""Benchmark configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

_TRUE = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class BenchConfig:
    """Settings shared by every trial of a run.

    The trial matrix itself is fixed in code; only where artifacts live, the
    lookup seed and log verbosity can be overridden from the environment.
    """

    workspace_dir: Path
    seed: int = 1
    batch_size: int = 1000
    lookups: int = 1_000_000
    map_size_factor: int = 128
    min_map_size: int = 1 << 20
    verbose: bool = False

    @classmethod
    def default(cls) -> "BenchConfig":
        """Default configuration rooted at the current directory."""

        return cls(workspace_dir=Path.cwd())

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BenchConfig":
        """Reads `KVBENCH_WORKDIR`, `KVBENCH_SEED` and `KVBENCH_VERBOSE`."""

        env = os.environ if environ is None else environ
        config = cls.default()

        workdir = (env.get("KVBENCH_WORKDIR") or "").strip()
        if workdir:
            config.workspace_dir = Path(workdir)

        seed = (env.get("KVBENCH_SEED") or "").strip()
        if seed:
            try:
                config.seed = int(seed)
            except ValueError as exc:
                raise ValueError(f"KVBENCH_SEED must be an integer, got {seed!r}") from exc

        config.verbose = (env.get("KVBENCH_VERBOSE") or "").strip().lower() in _TRUE
        return config
