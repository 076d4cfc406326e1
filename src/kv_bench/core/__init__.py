"""Harness core: records, clocks, trial models and the error taxonomy."""

from . import clock, models, records
from .errors import (
    ArtifactError,
    BackendError,
    BenchmarkError,
    TrialError,
    VerificationError,
    describe_failure,
)

__all__ = [
	"clock",
	"models",
	"records",
	"ArtifactError",
	"BackendError",
	"BenchmarkError",
	"TrialError",
	"VerificationError",
	"describe_failure",
]
