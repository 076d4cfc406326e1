"""Tests for artifact removal and size accounting."""

from __future__ import annotations

import errno
import os

import pytest

from kv_bench.artifacts import ensure_present, remove_all, total_size
from kv_bench.core.errors import ArtifactError


def _make_tree(root):
    (root / "a" / "b" / "c").mkdir(parents=True)
    (root / "top.bin").write_bytes(b"x" * 10)
    (root / "a" / "one.bin").write_bytes(b"x" * 100)
    (root / "a" / "b" / "two.bin").write_bytes(b"x" * 1000)
    (root / "a" / "b" / "c" / "three.bin").write_bytes(b"")
    return root


def test_total_size_sums_files_and_nested_directories(tmp_path) -> None:
    tree = _make_tree(tmp_path / "tree")
    single = tmp_path / "single.dat"
    single.write_bytes(b"y" * 7)

    assert total_size([tree, single]) == 10 + 100 + 1000 + 7


def test_total_size_of_absent_artifacts_is_zero(tmp_path) -> None:
    assert total_size([tmp_path / "missing.mdb", tmp_path / "missing-dir"]) == 0


def test_total_size_does_not_follow_symlink_cycles(tmp_path) -> None:
    tree = _make_tree(tmp_path / "tree")
    os.symlink(tree, tree / "a" / "loop")

    assert total_size([tree]) == 1110


def test_total_size_stat_failure_is_fatal(tmp_path) -> None:
    plain = tmp_path / "plain.txt"
    plain.write_text("x")

    with pytest.raises(ArtifactError) as info:
        total_size([plain / "child"])

    assert info.value.code == errno.ENOTDIR


def test_remove_all_deletes_files_and_directories(tmp_path) -> None:
    tree = _make_tree(tmp_path / "tree")
    single = tmp_path / "single.dat"
    single.write_bytes(b"y")

    remove_all([tree, single])

    assert not tree.exists()
    assert not single.exists()


def test_remove_all_is_idempotent(tmp_path) -> None:
    tree = _make_tree(tmp_path / "tree")
    paths = [tree, tmp_path / "never-created"]

    remove_all(paths)
    remove_all(paths)

    assert not tree.exists()
    assert total_size(paths) == 0


def test_remove_all_removes_symlink_not_target(tmp_path) -> None:
    target = _make_tree(tmp_path / "target")
    link = tmp_path / "link"
    os.symlink(target, link)

    remove_all([link])

    assert not os.path.lexists(link)
    assert (target / "top.bin").exists()


def test_ensure_present_reports_missing_path(tmp_path) -> None:
    present = tmp_path / "present"
    present.write_bytes(b"1")
    missing = tmp_path / "missing"

    ensure_present([present])
    with pytest.raises(ArtifactError) as info:
        ensure_present([present, missing])

    assert info.value.path == missing
    assert info.value.code == errno.ENOENT
