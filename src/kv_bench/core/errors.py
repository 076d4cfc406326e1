"""Fatal error taxonomy of the benchmark harness.

Every error here aborts the whole run: there is no recoverable path, and a
trial's metrics are only meaningful when every phase succeeded.
"""

from __future__ import annotations

import traceback
from pathlib import Path


class BenchmarkError(RuntimeError):
    """Base class for fatal harness errors.

    `code` is what the process exits with.
    """

    default_code = 1

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = self.default_code if code is None else int(code)


class ArtifactError(BenchmarkError):
    """Stat/remove failure on a declared artifact path."""

    def __init__(self, message: str, *, path: Path, code: int | None = None) -> None:
        super().__init__(message, code=code)
        self.path = Path(path)


class BackendError(BenchmarkError):
    """A storage engine call failed with its own error code."""


class VerificationError(BenchmarkError):
    """A lookup returned the wrong value or nothing at all."""

    def __init__(self, message: str, *, key: str, index: int, code: int | None = None) -> None:
        super().__init__(message, code=code)
        self.key = key
        self.index = index


class TrialError(BenchmarkError):
    """A trial phase failed; wraps the underlying error with trial context."""

    def __init__(self, cause: BenchmarkError, *, candidate: str, records: int, phase: str) -> None:
        super().__init__(
            f"{candidate} (n={records}) failed while {phase}: {cause}",
            code=cause.code,
        )
        self.cause = cause
        self.candidate = candidate
        self.records = records
        self.phase = phase


def _chain(error: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = error
    while current is not None and all(current is not seen for seen in chain):
        chain.append(current)
        current = getattr(current, "cause", None) or current.__cause__
    return chain


def failure_location(error: BaseException) -> str:
    """Returns `file:line` of the frame that raised the innermost error."""

    root = _chain(error)[-1]
    frames = traceback.extract_tb(root.__traceback__) if root.__traceback__ else []
    if not frames:
        return "<unknown>:0"
    frame = frames[-1]
    return f"{Path(frame.filename).name}:{frame.lineno}"


def describe_failure(error: BaseException) -> str:
    """Formats the one-line diagnostic printed before a fatal exit."""

    chain = _chain(error)
    harness_errors = [item for item in chain if isinstance(item, BenchmarkError) and not isinstance(item, TrialError)]
    if harness_errors:
        description = str(harness_errors[-1])
    else:
        description = f"{type(chain[-1]).__name__}: {chain[-1]}"
    return f"{failure_location(error)}: assertion failed: {description}"
