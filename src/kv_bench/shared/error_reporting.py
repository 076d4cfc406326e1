from __future__ import annotations

import json
import os
import platform
import sys
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Any
from uuid import uuid4

_ENV_KEYS = ("KVBENCH_WORKDIR", "KVBENCH_SEED", "KVBENCH_VERBOSE", "KVBENCH_ERROR_DIR")


@dataclass(frozen=True, slots=True)
class ErrorReport:
    path: Path
    created_at: datetime


def get_error_reports_dir() -> Path:
    """Returns a writable directory for error reports.

    Priority:
    1) `KVBENCH_ERROR_DIR` env var
    2) Project root: `./error_reports` (next to `pyproject.toml`)
    3) Fallback: `~/.kv_bench/error_reports`
    """

    override = (os.getenv("KVBENCH_ERROR_DIR") or "").strip()
    base: Path
    if override:
        base = Path(override)
    else:
        project_root = _find_project_root()
        if project_root is not None:
            base = project_root / "error_reports"
        else:
            base = Path.home() / ".kv_bench" / "error_reports"

    base.mkdir(parents=True, exist_ok=True)
    return base


def _find_project_root() -> Path | None:
    """Returns the nearest directory containing `pyproject.toml` (best-effort)."""

    for start in (Path.cwd(), Path(__file__).resolve().parent):
        current = start
        for _ in range(25):
            if (current / "pyproject.toml").is_file():
                return current
            if current.parent == current:
                break
            current = current.parent
    return None


def _safe_app_version() -> str:
    try:
        return metadata.version("kv-bench")
    except metadata.PackageNotFoundError:
        return "unknown"


def _with_environment(context: dict[str, Any]) -> dict[str, Any]:
    out = dict(context)
    out.setdefault("env", {key: os.getenv(key) for key in _ENV_KEYS})
    return out


def write_error_report(
    error: BaseException,
    *,
    where: str,
    context: dict[str, Any] | None = None,
) -> ErrorReport:
    """Writes a timestamped error report and returns its path."""

    reports_dir = get_error_reports_dir()
    created_at = datetime.now(timezone.utc)
    stamp = created_at.strftime("%Y%m%d_%H%M%S")
    path = reports_dir / f"error_{stamp}_{uuid4().hex[:8]}.txt"

    header = {
        "created_at": created_at.isoformat(),
        "where": where,
        "app_version": _safe_app_version(),
        "python": sys.version.replace("\n", " "),
        "platform": platform.platform(),
        "executable": sys.executable,
        "cwd": str(Path.cwd()),
        "context": _with_environment(context or {}),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "error_code": getattr(error, "code", None),
    }

    tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))

    content = (
        "kv-bench Error Report\n"
        "=====================\n\n"
        + json.dumps(header, ensure_ascii=False, indent=2, default=str)
        + "\n\nTraceback\n---------\n"
        + tb
    )

    path.write_text(content, encoding="utf-8", errors="replace")
    return ErrorReport(path=path, created_at=created_at)
