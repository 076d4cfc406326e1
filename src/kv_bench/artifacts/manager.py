"""Recursive removal and size accounting for candidate artifacts."""

from __future__ import annotations

import errno
import shutil
import stat
from pathlib import Path
from typing import Iterable

from structlog import get_logger

from kv_bench.core.errors import ArtifactError

_logger = get_logger(__name__)


def _artifact_error(action: str, path: Path, exc: OSError) -> ArtifactError:
    reason = exc.strerror or str(exc)
    return ArtifactError(f"{action} {path}: {reason}", path=path, code=exc.errno or errno.EIO)


def _remove(path: Path) -> bool:
    try:
        info = path.lstat()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise _artifact_error("cannot stat", path, exc) from exc

    try:
        if stat.S_ISDIR(info.st_mode):
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise _artifact_error("cannot remove", path, exc) from exc
    return True


def remove_all(paths: Iterable[Path]) -> None:
    """Deletes every path (files directly, directories recursively).

    Missing paths are the steady state after a reset and are not an error.
    """

    removed = [str(path) for path in map(Path, paths) if _remove(path)]
    if removed:
        _logger.debug("artifacts-removed", paths=removed)


def _size(path: Path) -> int:
    try:
        info = path.lstat()
    except FileNotFoundError:
        return 0
    except OSError as exc:
        raise _artifact_error("cannot stat", path, exc) from exc

    if stat.S_ISREG(info.st_mode):
        return info.st_size
    if stat.S_ISDIR(info.st_mode):
        try:
            children = sorted(path.iterdir())
        except OSError as exc:
            raise _artifact_error("cannot list", path, exc) from exc
        return sum(_size(child) for child in children)
    # symlinks, sockets, devices: never followed
    return 0


def total_size(paths: Iterable[Path]) -> int:
    """Sums the byte size of every path, recursing into directories.

    Absent paths count as zero; any other stat failure raises `ArtifactError`.
    """

    return sum(_size(Path(path)) for path in paths)


def ensure_present(paths: Iterable[Path]) -> None:
    """Raises `ArtifactError` for the first declared path that does not exist."""

    for path in map(Path, paths):
        try:
            path.lstat()
        except OSError as exc:
            raise _artifact_error("missing artifact", path, exc) from exc
