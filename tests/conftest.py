"""Pytest configuration shared by the suite."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolated_error_reports(monkeypatch, tmp_path):
    """Keeps fatal-error reports out of the project tree."""

    monkeypatch.setenv("KVBENCH_ERROR_DIR", str(tmp_path / "error_reports"))
    monkeypatch.delenv("KVBENCH_WORKDIR", raising=False)
    monkeypatch.delenv("KVBENCH_SEED", raising=False)
    monkeypatch.delenv("KVBENCH_VERBOSE", raising=False)


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "artifacts"
    path.mkdir()
    return path
