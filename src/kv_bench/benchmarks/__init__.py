"""Benchmark driver.

This package provides:
- the single-trial runner (reset, populate, verify, cleanup),
- the fixed trial matrix.
"""

from .matrix import MATRIX, default_matrix
from .runner import run_matrix, run_trial

__all__ = ["MATRIX", "default_matrix", "run_matrix", "run_trial"]
