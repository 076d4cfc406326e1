"""Base class for benchmarked storage backends."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, ContextManager, Optional

from kv_bench.core.errors import VerificationError
from kv_bench.core.models import PopulateResult
from kv_bench.core.records import format_key, format_value, key_text

ValueReader = Callable[[bytes], Optional[bytes]]


class Candidate(ABC):
    """One pluggable storage backend under benchmark.

    Subclasses own the engine calls: bulk loading, opening a point-lookup
    reader and naming the files they create. The verification loop and the
    record formatting are shared so every backend is checked the same way.
    """

    name: str = "candidate"
    artifact_names: tuple[str, ...] = ()
    not_found_code: int = 1

    def __init__(self, directory: Path, *, batch_size: int = 1000, seed: int = 1) -> None:
        if batch_size <= 0:
            raise ValueError("batch size must be positive")
        self.directory = Path(directory)
        self.batch_size = int(batch_size)
        self.seed = int(seed)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, directory={str(self.directory)!r})"

    def artifacts(self) -> tuple[Path, ...]:
        """Paths this backend persists into, in a fixed order."""

        return tuple(self.directory / name for name in self.artifact_names)

    def lookup_key(self, index: int) -> bytes:
        return format_key(index)

    @abstractmethod
    def populate(self, records: int) -> PopulateResult:
        """Writes `records` records in ascending key order."""

    @abstractmethod
    def open_reader(self) -> ContextManager[ValueReader]:
        """Opens the loaded data for point lookups.

        The reader returns the stored value, or None when the key is absent.
        """

    def verify(self, records: int, lookups: int, *, rng: random.Random | None = None) -> None:
        """Performs `lookups` random point lookups and checks every value.

        Stops at the first mismatch with a `VerificationError` naming the key.
        """

        if records <= 0 or lookups <= 0:
            raise ValueError("records and lookups must be positive")
        rng = rng if rng is not None else random.Random(self.seed)

        with self.open_reader() as read:
            for _ in range(int(lookups)):
                index = rng.randrange(records)
                expected = format_value(index)
                actual = read(self.lookup_key(index))
                if actual is None:
                    key = key_text(index)
                    raise VerificationError(
                        f"failed to lookup key: {key} (index {index})",
                        key=key,
                        index=index,
                        code=self.not_found_code,
                    )
                if actual != expected:
                    key = key_text(index)
                    raise VerificationError(
                        f"did not get the expected value for key: {key} (index {index}, "
                        f"expected {len(expected)} bytes, got {len(actual)})",
                        key=key,
                        index=index,
                    )
