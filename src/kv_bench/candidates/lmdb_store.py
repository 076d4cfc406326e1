"""LMDB candidates: single data file, append-only bulk load, batched commits."""

from __future__ import annotations

import errno
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import lmdb
from structlog import get_logger

from kv_bench.core.errors import BackendError
from kv_bench.core.models import PopulateResult
from kv_bench.core.records import format_int_key, format_value, iter_batches

from .base import Candidate, ValueReader

# Return codes from lmdb.h, keyed by the name py-lmdb exposes on its errors.
MDB_CODES = {
    "MDB_KEYEXIST": -30799,
    "MDB_NOTFOUND": -30798,
    "MDB_PAGE_NOTFOUND": -30797,
    "MDB_CORRUPTED": -30796,
    "MDB_PANIC": -30795,
    "MDB_VERSION_MISMATCH": -30794,
    "MDB_INVALID": -30793,
    "MDB_MAP_FULL": -30792,
    "MDB_DBS_FULL": -30791,
    "MDB_READERS_FULL": -30790,
    "MDB_TLS_FULL": -30789,
    "MDB_TXN_FULL": -30788,
    "MDB_CURSOR_FULL": -30787,
    "MDB_PAGE_FULL": -30786,
    "MDB_MAP_RESIZED": -30785,
    "MDB_INCOMPATIBLE": -30784,
    "MDB_BAD_RSLOT": -30783,
    "MDB_BAD_TXN": -30782,
    "MDB_BAD_VALSIZE": -30781,
    "MDB_BAD_DBI": -30780,
}


# py-lmdb exception class names for the same codes.
_ERROR_CLASSES = {
    "KeyExistsError": "MDB_KEYEXIST",
    "NotFoundError": "MDB_NOTFOUND",
    "PageNotFoundError": "MDB_PAGE_NOTFOUND",
    "CorruptedError": "MDB_CORRUPTED",
    "PanicError": "MDB_PANIC",
    "VersionMismatchError": "MDB_VERSION_MISMATCH",
    "InvalidError": "MDB_INVALID",
    "MapFullError": "MDB_MAP_FULL",
    "DbsFullError": "MDB_DBS_FULL",
    "ReadersFullError": "MDB_READERS_FULL",
    "TlsFullError": "MDB_TLS_FULL",
    "TxnFullError": "MDB_TXN_FULL",
    "CursorFullError": "MDB_CURSOR_FULL",
    "PageFullError": "MDB_PAGE_FULL",
    "MapResizedError": "MDB_MAP_RESIZED",
    "IncompatibleError": "MDB_INCOMPATIBLE",
    "BadRslotError": "MDB_BAD_RSLOT",
    "BadTxnError": "MDB_BAD_TXN",
    "BadValsizeError": "MDB_BAD_VALSIZE",
    "BadDbiError": "MDB_BAD_DBI",
    "InvalidParameterError": "EINVAL",
    "LockError": "EAGAIN",
    "MemoryError": "ENOMEM",
    "DiskError": "EIO",
    "ReadonlyError": "EACCES",
}


def lmdb_error_code(exc: BaseException) -> int:
    """Maps a py-lmdb exception back to the C return code (or errno)."""

    name = getattr(exc, "MDB_NAME", "") or ""
    if not name:
        name = next((_ERROR_CLASSES[k.__name__] for k in type(exc).__mro__ if k.__name__ in _ERROR_CLASSES), "")
    if name in MDB_CODES:
        return MDB_CODES[name]
    code = getattr(errno, name, None) if name else None
    return int(code) if isinstance(code, int) and code else 1


def _backend_error(action: str, exc: lmdb.Error) -> BackendError:
    return BackendError(f"{action}: {exc}", code=lmdb_error_code(exc))


class LmdbCandidate(Candidate):
    """LMDB with string keys in the main database.

    The data file is opened without fsync, with a writable memory map and
    without a subdirectory or lock file: durability is traded for raw
    write throughput.
    """

    name = "LMDB uncompressed"
    artifact_names = ("test.mdb",)
    not_found_code = MDB_CODES["MDB_NOTFOUND"]

    def __init__(
        self,
        directory: Path,
        *,
        batch_size: int = 1000,
        seed: int = 1,
        map_size_factor: int = 128,
        min_map_size: int = 1 << 20,
    ) -> None:
        super().__init__(directory, batch_size=batch_size, seed=seed)
        self.map_size_factor = int(map_size_factor)
        self.min_map_size = int(min_map_size)
        self._logger = get_logger(__name__).bind(candidate=self.name)

    @property
    def data_path(self) -> Path:
        return self.directory / self.artifact_names[0]

    def map_size(self, records: int) -> int:
        return max(int(records) * self.map_size_factor, self.min_map_size)

    # ------------------------------------------------------------------
    # Database selection (overridden by the integer-key variant)
    # ------------------------------------------------------------------

    max_dbs = 0

    def _writer_db(self, env: lmdb.Environment) -> Optional[lmdb._Database]:
        return None

    def _reader_db(self, env: lmdb.Environment, txn: lmdb.Transaction) -> Optional[lmdb._Database]:
        return None

    # ------------------------------------------------------------------
    # Candidate
    # ------------------------------------------------------------------

    def populate(self, records: int) -> PopulateResult:
        self.directory.mkdir(parents=True, exist_ok=True)
        map_size = self.map_size(records)
        try:
            env = lmdb.open(
                str(self.data_path),
                map_size=map_size,
                subdir=False,
                sync=False,
                writemap=True,
                lock=False,
                max_dbs=self.max_dbs,
            )
        except lmdb.Error as exc:
            raise _backend_error("mdb_env_open", exc) from exc

        try:
            db = self._writer_db(env)
            committed = 0
            for batch in iter_batches(records, self.batch_size):
                # leaving the block commits; an error inside aborts the batch
                with env.begin(write=True, db=db) as txn:
                    cursor = txn.cursor(db) if db is not None else txn.cursor()
                    for index in batch:
                        if not cursor.put(self.lookup_key(index), format_value(index), append=True):
                            raise BackendError(
                                f"mdb_cursor_put: out-of-order key at index {index}",
                                code=MDB_CODES["MDB_KEYEXIST"],
                            )
                committed += 1
            data_size = env.stat()["psize"] * env.info()["last_pgno"]
        except lmdb.Error as exc:
            raise _backend_error("mdb_populate", exc) from exc
        finally:
            env.close()

        self._logger.debug("lmdb-populated", records=records, batches=committed, map_size=map_size)
        return PopulateResult(artifacts=self.artifacts(), data_size=int(data_size))

    @contextmanager
    def open_reader(self) -> Iterator[ValueReader]:
        try:
            env = lmdb.open(str(self.data_path), subdir=False, readonly=True, lock=False, max_dbs=self.max_dbs)
        except lmdb.Error as exc:
            raise _backend_error("mdb_env_open", exc) from exc

        try:
            with env.begin() as txn:
                db = self._reader_db(env, txn)
                cursor = txn.cursor(db) if db is not None else txn.cursor()

                def read(key: bytes) -> Optional[bytes]:
                    try:
                        if not cursor.set_key(key):
                            return None
                        return cursor.value()
                    except lmdb.Error as exc:
                        raise _backend_error("mdb_cursor_get", exc) from exc

                yield read
        except lmdb.Error as exc:
            raise _backend_error("mdb_txn_begin", exc) from exc
        finally:
            env.close()


class LmdbIntegerKeyCandidate(LmdbCandidate):
    """LMDB keyed by native unsigned ints in an `integerkey` database."""

    name = "LMDB integer keys"
    max_dbs = 1
    db_name = b"records"

    def lookup_key(self, index: int) -> bytes:
        return format_int_key(index)

    def _writer_db(self, env: lmdb.Environment) -> Optional[lmdb._Database]:
        return env.open_db(self.db_name, integerkey=True)

    def _reader_db(self, env: lmdb.Environment, txn: lmdb.Transaction) -> Optional[lmdb._Database]:
        return env.open_db(self.db_name, txn=txn, integerkey=True, create=False)
