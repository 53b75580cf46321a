import os
import sys

import pytest

from auto_updater.cleanup import cleanup_directory, cleanup_listed


def _symlink(target, link, target_is_directory=True):
    try:
        os.symlink(target, link, target_is_directory=target_is_directory)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks are not available on this platform")


def _tree(root):
    return sorted(
        os.path.relpath(os.path.join(d, n), root).replace(os.sep, "/")
        for d, dirs, files in os.walk(root)
        for n in dirs + files
    )


def test_clean_all_keeps_exceptions_and_marker(tmp_path):
    for name in ("keep.txt", "versionhash", "drop.txt"):
        (tmp_path / name).write_text(name, encoding="utf-8")
    cleanup_directory(tmp_path, tmp_path, set(), {"keep.txt"})
    assert sorted(p.name for p in tmp_path.iterdir()) == ["keep.txt", "versionhash"]


def test_clean_all_removes_nested_directories(tmp_path):
    (tmp_path / "bin" / "lib").mkdir(parents=True)
    (tmp_path / "bin" / "lib" / "a.so").write_bytes(b"x")
    (tmp_path / "bin" / "app").write_bytes(b"x")
    (tmp_path / "empty").mkdir()
    report = cleanup_directory(tmp_path, tmp_path)
    assert list(tmp_path.iterdir()) == []
    assert len(report.removed_files) == 2
    assert len(report.removed_dirs) == 3
    assert report.failures == []


def test_marker_case_insensitive_and_its_parent_kept(tmp_path):
    (tmp_path / "VERSIONHASH").write_bytes(b"x" * 64)
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "VersionHash").write_bytes(b"y")
    (tmp_path / "sub" / "other").write_bytes(b"y")
    cleanup_directory(tmp_path, tmp_path)
    assert _tree(tmp_path) == ["VERSIONHASH", "sub", "sub/VersionHash"]


def test_exceptions_match_relative_and_absolute_paths(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "app.json").write_text("{}", encoding="utf-8")
    (tmp_path / "config" / "cache.bin").write_bytes(b"x")
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "db.sqlite").write_bytes(b"x")
    (tmp_path / "gone.txt").write_text("x", encoding="utf-8")
    cleanup_directory(
        tmp_path,
        tmp_path,
        exceptions=["config/app.json", str(tmp_path / "data")],
    )
    assert _tree(tmp_path) == ["config", "config/app.json", "data", "data/db.sqlite"]


def test_excepted_directory_kept_whole(tmp_path):
    (tmp_path / "user-data" / "deep").mkdir(parents=True)
    (tmp_path / "user-data" / "deep" / "f").write_bytes(b"x")
    cleanup_directory(tmp_path, tmp_path, exceptions={"user-data"})
    assert _tree(tmp_path) == ["user-data", "user-data/deep", "user-data/deep/f"]


@pytest.mark.parametrize("exception", ["user-data", "user-data/", "ABS"])
def test_link_into_excepted_directory_is_not_followed(tmp_path, exception):
    (tmp_path / "user-data" / "deep").mkdir(parents=True)
    (tmp_path / "user-data" / "db.sqlite").write_bytes(b"x")
    (tmp_path / "user-data" / "deep" / "f").write_bytes(b"x")
    _symlink(tmp_path / "user-data", tmp_path / "shortcut")
    _symlink(tmp_path / "user-data" / "deep", tmp_path / "deep-link")
    if exception == "ABS":
        exception = str(tmp_path / "user-data")
    cleanup_directory(tmp_path, tmp_path, set(), {exception})
    assert _tree(tmp_path) == ["user-data", "user-data/db.sqlite", "user-data/deep", "user-data/deep/f"]


def test_root_outside_base_is_left_alone(tmp_path):
    base = tmp_path / "data"
    other = tmp_path / "data2"
    base.mkdir()
    other.mkdir()
    (other / "precious").write_bytes(b"x")
    report = cleanup_directory(other, base)
    assert (other / "precious").exists()
    assert report.visited == []


def test_cyclic_symlink_terminates_and_visits_once(tmp_path):
    (tmp_path / "a" / "b").mkdir(parents=True)
    (tmp_path / "a" / "b" / "file").write_bytes(b"x")
    _symlink(tmp_path, tmp_path / "a" / "b" / "loop")
    _symlink(tmp_path / "a", tmp_path / "again")
    report = cleanup_directory(tmp_path, tmp_path)
    assert len(report.visited) == len(set(report.visited))
    assert list(tmp_path.iterdir()) == []


def test_symlink_outside_base_is_not_followed(tmp_path):
    target = tmp_path / "target"
    outside = tmp_path / "outside"
    target.mkdir()
    outside.mkdir()
    (outside / "precious.txt").write_text("keep me", encoding="utf-8")
    _symlink(outside, target / "escape")
    report = cleanup_directory(target, target)
    assert (outside / "precious.txt").read_text(encoding="utf-8") == "keep me"
    assert not os.path.lexists(target / "escape")
    assert os.path.normcase(os.path.realpath(outside)) not in report.visited


def test_shared_visited_set_prevents_reprocessing(tmp_path):
    (tmp_path / "f").write_bytes(b"x")
    visited = set()
    cleanup_directory(tmp_path, tmp_path, visited)
    (tmp_path / "g").write_bytes(b"x")
    report = cleanup_directory(tmp_path, tmp_path, visited)
    assert report.visited == []
    assert (tmp_path / "g").exists()


def test_missing_root_raises(tmp_path):
    with pytest.raises(OSError):
        cleanup_directory(tmp_path / "nope", tmp_path)


@pytest.mark.skipif(
    sys.platform.startswith("win") or (hasattr(os, "geteuid") and os.geteuid() == 0),
    reason="permission bits are not enforced",
)
def test_individual_failures_do_not_stop_cleanup(tmp_path):
    locked = tmp_path / "locked"
    locked.mkdir()
    (locked / "stuck").write_bytes(b"x")
    (tmp_path / "free").write_bytes(b"x")
    locked.chmod(0o500)
    try:
        report = cleanup_directory(tmp_path, tmp_path)
    finally:
        locked.chmod(0o700)
    assert not (tmp_path / "free").exists()
    assert (locked / "stuck").exists()
    assert any(path.endswith("stuck") for path, _ in report.failures)


def test_listed_paths_only(tmp_path):
    (tmp_path / "cache").mkdir()
    (tmp_path / "cache" / "blob").write_bytes(b"x")
    (tmp_path / "old.log").write_text("x", encoding="utf-8")
    (tmp_path / "app.bin").write_bytes(b"x")
    cleanup_listed(["cache", str(tmp_path / "old.log"), "missing"], tmp_path)
    assert _tree(tmp_path) == ["app.bin"]


def test_listed_never_deletes_marker(tmp_path):
    (tmp_path / "versionhash").write_bytes(b"x" * 64)
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "versionhash").write_bytes(b"x")
    (tmp_path / "sub" / "other").write_bytes(b"x")
    cleanup_listed(["versionhash", "VERSIONHASH", "sub", "."], tmp_path)
    assert _tree(tmp_path) == ["sub", "sub/versionhash", "versionhash"]


def test_listed_entries_outside_base_are_skipped(tmp_path):
    base = tmp_path / "data"
    base.mkdir()
    sibling = tmp_path / "data2"
    sibling.mkdir()
    (sibling / "x").write_bytes(b"x")
    cleanup_listed([str(sibling), "../data2/x"], base)
    assert (sibling / "x").exists()


def test_listed_symlink_is_removed_not_followed(tmp_path):
    base = tmp_path / "data"
    base.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "precious").write_bytes(b"x")
    _symlink(outside, base / "link")
    cleanup_listed(["link"], base)
    assert not os.path.lexists(base / "link")
    assert (outside / "precious").exists()
