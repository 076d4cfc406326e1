"""Deterministic synthetic records.

The same formatting rule is used when populating and when verifying, so a
lookup can rebuild its expected value from the index alone.
"""

from __future__ import annotations

import struct
from typing import Iterator

KEY_DIGITS = 9
MAX_RECORDS = 10**KEY_DIGITS

_INT_KEY = struct.Struct("=I")


def _check_index(index: int) -> int:
    index = int(index)
    if not 0 <= index < MAX_RECORDS:
        raise ValueError(f"record index out of range: {index}")
    return index


def key_text(index: int) -> str:
    return f"key_{_check_index(index):0{KEY_DIGITS}d}"


def format_key(index: int) -> bytes:
    return key_text(index).encode("ascii")


def format_value(index: int) -> bytes:
    return f"value_{_check_index(index)}".encode("ascii")


def format_int_key(index: int) -> bytes:
    """Packs the index as a native unsigned int (LMDB integer-key layout)."""

    return _INT_KEY.pack(_check_index(index))


def iter_records(count: int) -> Iterator[tuple[int, bytes, bytes]]:
    """Yields `(index, key, value)` in ascending key order."""

    for index in range(int(count)):
        yield index, format_key(index), format_value(index)


def iter_batches(count: int, size: int) -> Iterator[list[int]]:
    """Splits `range(count)` into consecutive index batches of at most `size`."""

    if size <= 0:
        raise ValueError("batch size must be positive")
    for start in range(0, int(count), int(size)):
        yield list(range(start, min(start + int(size), int(count))))
