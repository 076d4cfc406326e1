"""Split-file candidate: append-only data log plus a separate index file."""

from __future__ import annotations

import dbm.dumb
import errno
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from structlog import get_logger

from kv_bench.artifacts import total_size
from kv_bench.core.errors import BackendError
from kv_bench.core.models import PopulateResult
from kv_bench.core.records import iter_records

from .base import Candidate, ValueReader


def _backend_error(action: str, exc: OSError) -> BackendError:
    return BackendError(f"{action}: {exc.strerror or exc}", code=exc.errno or errno.EIO)


class DumbDbmCandidate(Candidate):
    """`dbm.dumb` database: values go to `test.dat`, the key index to `test.dir`.

    Every new key appends a line to `test.dir`; closing the writer moves that
    file to `test.bak` and rewrites `test.dir` from the in-memory index. The
    engine has no transactions, so `batch_size` does not apply here.
    """

    name = "dbm.dumb log+index"
    artifact_names = ("test.dat", "test.dir", "test.bak")

    def __init__(self, directory: Path, *, batch_size: int = 1000, seed: int = 1) -> None:
        super().__init__(directory, batch_size=batch_size, seed=seed)
        self._logger = get_logger(__name__).bind(candidate=self.name)

    @property
    def base_path(self) -> Path:
        return self.directory / "test"

    def populate(self, records: int) -> PopulateResult:
        self.directory.mkdir(parents=True, exist_ok=True)
        try:
            with dbm.dumb.open(str(self.base_path), "n") as db:
                for _, key, value in iter_records(records):
                    db[key] = value
        except OSError as exc:
            raise _backend_error("dbm_populate", exc) from exc

        artifacts = self.artifacts()
        data_size = total_size(artifacts)
        self._logger.debug("dbm-populated", records=records, data_size=data_size)
        return PopulateResult(artifacts=artifacts, data_size=data_size)

    @contextmanager
    def open_reader(self) -> Iterator[ValueReader]:
        try:
            db = dbm.dumb.open(str(self.base_path), "r")
        except OSError as exc:
            raise _backend_error("dbm_open", exc) from exc

        def read(key: bytes) -> Optional[bytes]:
            try:
                return db.get(key)
            except OSError as exc:
                raise _backend_error("dbm_get", exc) from exc

        try:
            yield read
        finally:
            db.close()
