"""Tests for best-effort deletion."""

import errno
import os
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import patch

import pytest

from dustpan.deleter import (
    MultiDeleteError,
    delete_path,
    delete_path_with_progress,
    delete_paths,
    run_request,
    submit_delete,
)
from dustpan.models import DeletionRequest, DeletionResult
from dustpan.progress import ProgressCounter

REAL_SCANDIR = os.scandir
REAL_REMOVE = os.remove

running_as_root = hasattr(os, "geteuid") and os.geteuid() == 0


def make_tree(root: Path, files: list[str]) -> None:
    """Create root with the given relative files."""
    root.mkdir(parents=True, exist_ok=True)
    for rel in files:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("data")


def scandir_denying(*blocked: Path, error: int = errno.EACCES):
    """os.scandir replacement that fails for the given directories."""
    blocked_paths = {str(p) for p in blocked}

    def fake_scandir(path=".", *args, **kwargs):
        if isinstance(path, (str, os.PathLike)) and os.fspath(path) in blocked_paths:
            exc_type = PermissionError if error == errno.EACCES else OSError
            raise exc_type(error, os.strerror(error), os.fspath(path))
        return REAL_SCANDIR(path, *args, **kwargs)

    return fake_scandir


class TestDeletePathWithProgress:
    def test_deletes_whole_tree(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "b.txt", "sub/c.txt", "sub/deep/d.txt", "other/e.txt"])
        (root / "empty").mkdir()

        count, error = delete_path_with_progress(root)

        assert count == 5
        assert error is None
        assert not root.exists()

    def test_single_file_root(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("hello")

        count, error = delete_path_with_progress(target)

        assert count == 1
        assert error is None
        assert not target.exists()

    def test_empty_directory(self, tmp_path):
        root = tmp_path / "empty"
        root.mkdir()

        count, error = delete_path_with_progress(root)

        assert count == 0
        assert error is None
        assert not root.exists()

    def test_nonexistent_path(self, tmp_path):
        count, error = delete_path_with_progress(tmp_path / "missing")

        assert count == 0
        assert isinstance(error, FileNotFoundError)

    def test_second_run_reports_missing_root(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt"])

        assert delete_path_with_progress(root) == (1, None)
        count, error = delete_path_with_progress(root)

        assert count == 0
        assert isinstance(error, FileNotFoundError)

    def test_symlinks_are_removed_not_followed(self, tmp_path):
        outside = tmp_path / "outside"
        make_tree(outside, ["keep.txt"])
        root = tmp_path / "tree"
        make_tree(root, ["a.txt"])
        (root / "link").symlink_to(outside, target_is_directory=True)

        count, error = delete_path_with_progress(root)

        assert error is None
        assert count == 2  # a.txt and the link itself
        assert (outside / "keep.txt").exists()

    def test_counter_values_never_decrease(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, [f"dir{i}/file{j}.txt" for i in range(3) for j in range(4)])
        published = []

        count, error = delete_path_with_progress(root, published.append)

        assert error is None
        assert published == sorted(published)
        assert published[-1] == count == 12

    def test_progress_counter_ends_at_count(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "b/c.txt"])
        counter = ProgressCounter()

        count, _ = delete_path_with_progress(root, counter)

        assert counter.value == count == 2

    def test_base_offsets_published_values(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "b.txt"])
        published = []

        count, _ = delete_path_with_progress(root, published.append, base=10)

        assert count == 2
        assert published == [11, 12]


class TestDeletePathErrors:
    def test_permission_denied_skips_subtree(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "locked/x.txt", "locked/y.txt", "sibling/z.txt"])
        locked = root / "locked"

        with patch("os.scandir", side_effect=scandir_denying(locked)):
            count, error = delete_path_with_progress(root)

        assert count == 2
        assert isinstance(error, PermissionError)
        assert error.filename == str(locked)
        assert not (root / "sibling" / "z.txt").exists()

    def test_other_walk_error_continues(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a/broken.txt", "b/ok.txt", "c/ok.txt"])

        with patch("os.scandir", side_effect=scandir_denying(root / "a", error=errno.EIO)):
            count, error = delete_path_with_progress(root)

        assert count == 2
        assert error.errno == errno.EIO
        assert not (root / "c" / "ok.txt").exists()

    def test_first_error_wins_over_cleanup_failure(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "locked/x.txt"])
        locked = root / "locked"

        with patch("os.scandir", side_effect=scandir_denying(locked)):
            with patch("shutil.rmtree", side_effect=OSError(errno.EBUSY, "cleanup failed")):
                count, error = delete_path_with_progress(root)

        assert count == 1
        assert isinstance(error, PermissionError)
        assert "cleanup failed" not in str(error)

    def test_cleanup_failure_reported_when_nothing_else_failed(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "b/c.txt"])

        with patch("shutil.rmtree", side_effect=OSError(errno.EBUSY, "cleanup failed")):
            count, error = delete_path_with_progress(root)

        assert count == 2
        assert error.errno == errno.EBUSY
        assert root.exists()

    def test_removal_error_continues(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "b.txt", "c.txt", "sub/d.txt"])
        stuck = str(root / "b.txt")

        def fake_remove(path, *args, **kwargs):
            if os.fspath(path) == stuck:
                raise PermissionError(errno.EPERM, "Operation not permitted", stuck)
            return REAL_REMOVE(path, *args, **kwargs)

        with patch("os.remove", side_effect=fake_remove):
            count, error = delete_path_with_progress(root)

        assert count == 3
        assert isinstance(error, PermissionError)
        assert error.filename == stuck

    @pytest.mark.skipif(running_as_root, reason="root can read any directory")
    @pytest.mark.skipif(os.name != "posix", reason="needs POSIX permissions")
    def test_unreadable_directory_on_disk(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "locked/x.txt", "locked/y.txt", "sibling/z.txt"])
        locked = root / "locked"
        locked.chmod(0)

        try:
            count, error = delete_path_with_progress(root)

            assert count == 2
            assert isinstance(error, PermissionError)
            assert not (root / "sibling" / "z.txt").exists()
        finally:
            locked.chmod(0o755)
            shutil.rmtree(root, ignore_errors=True)


class TestDeletePaths:
    def test_three_roots_middle_missing(self, tmp_path):
        first = tmp_path / "first"
        make_tree(first, ["a.txt", "b.txt"])
        missing = tmp_path / "missing"
        third = tmp_path / "third"
        make_tree(third, ["x.txt", "y/z.txt", "y/w.txt"])

        result = delete_paths([first, missing, third])

        assert result.done
        assert result.count == 5
        assert isinstance(result.err, MultiDeleteError)
        assert str(missing) in str(result.err)
        assert result.path == ""
        assert not first.exists()
        assert not third.exists()

    def test_single_empty_directory(self, tmp_path):
        root = tmp_path / "empty"
        root.mkdir()

        result = delete_paths([root])

        assert result.count == 0
        assert result.err is None
        assert result.path == str(root)
        assert not root.exists()

    def test_multiple_roots_without_errors(self, tmp_path):
        roots = []
        for name in ("one", "two"):
            make_tree(tmp_path / name, ["f.txt"])
            roots.append(tmp_path / name)

        result = delete_paths(roots)

        assert result.count == 2
        assert result.err is None
        assert result.path == ""

    def test_single_root_error_keeps_own_message(self, tmp_path):
        missing = tmp_path / "missing"

        result = delete_paths([missing])

        assert result.count == 0
        assert result.path == str(missing)
        assert str(result.err) == result.err.errors[0]
        assert isinstance(result.err.causes[0], FileNotFoundError)

    def test_all_errors_kept_but_three_displayed(self, tmp_path):
        roots = [tmp_path / f"missing{i}" for i in range(5)]

        result = delete_paths(roots)

        assert len(result.err.errors) == 5
        text = str(result.err)
        assert str(roots[0]) in text
        assert str(roots[2]) in text
        assert str(roots[3]) not in text
        assert text.count("; ") == 2

    def test_counter_grows_across_roots(self, tmp_path):
        make_tree(tmp_path / "one", ["a.txt", "b.txt"])
        make_tree(tmp_path / "two", ["c.txt", "d/e.txt", "d/f.txt"])
        published = []

        result = delete_paths([tmp_path / "one", tmp_path / "two"], published.append)

        assert published == [1, 2, 3, 4, 5]
        assert result.count == 5

    def test_partial_failure_keeps_count(self, tmp_path):
        root = tmp_path / "tree"
        make_tree(root, ["a.txt", "locked/x.txt", "b/c.txt"])

        with patch("os.scandir", side_effect=scandir_denying(root / "locked")):
            result = delete_paths([root])

        assert result.count == 2
        assert not result.success
        assert "Permission denied" in result.error_message

    def test_roots_processed_in_order(self, tmp_path):
        make_tree(tmp_path / "one", ["a.txt"])
        make_tree(tmp_path / "two", ["b.txt"])
        seen = []

        def record(root, counter=None, base=0):
            seen.append(Path(root).name)
            return 0, None

        with patch("dustpan.deleter.delete_path_with_progress", side_effect=record):
            delete_paths([tmp_path / "two", tmp_path / "one"])

        assert seen == ["two", "one"]

    def test_delete_path_is_single_root(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")

        result = delete_path(target)

        assert result.count == 1
        assert result.path == str(target)


class TestMultiDeleteError:
    def test_single_message(self):
        err = MultiDeleteError(["only one"])
        assert str(err) == "only one"

    def test_truncates_display_to_three(self):
        err = MultiDeleteError(["a", "b", "c", "d", "e"])
        assert str(err) == "a; b; c"
        assert err.errors == ["a", "b", "c", "d", "e"]
        assert len(err) == 5

    def test_is_an_exception(self):
        with pytest.raises(MultiDeleteError):
            raise MultiDeleteError(["boom"])


class TestDispatch:
    def test_run_request(self, tmp_path):
        make_tree(tmp_path / "tree", ["a.txt", "b.txt"])
        counter = ProgressCounter()

        result = run_request(DeletionRequest(roots=[str(tmp_path / "tree")], counter=counter))

        assert result.count == 2
        assert counter.value == 2

    def test_submit_delete_resolves_once(self, tmp_path):
        make_tree(tmp_path / "tree", ["a.txt", "b/c.txt", "b/d.txt"])
        counter = ProgressCounter(99)
        request = DeletionRequest(roots=[str(tmp_path / "tree")], counter=counter)

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = submit_delete(executor, request)
            result = future.result(timeout=30)

        assert isinstance(result, DeletionResult)
        assert result.count == 3
        assert counter.value == 3
        assert not (tmp_path / "tree").exists()
