"""Best-effort, progress-tracked deletion for dustpan."""

import os
import shutil
import stat
from concurrent.futures import Executor, Future
from typing import Iterable, Optional, Union

from loguru import logger

from dustpan.models import DeletionRequest, DeletionResult
from dustpan.progress import ProgressSink

PathLike = Union[str, os.PathLike]


class MultiDeleteError(Exception):
    """Errors collected across one deletion run, in the order they occurred."""

    # Only the first few are shown; the full list stays on the instance
    MAX_DISPLAYED = 3

    def __init__(self, errors: Iterable[str], causes: Iterable[BaseException] = ()):
        self.errors = list(errors)
        self.causes = list(causes)
        super().__init__(self.errors)

    def __str__(self) -> str:
        if len(self.errors) == 1:
            return self.errors[0]
        return "; ".join(self.errors[: self.MAX_DISPLAYED])

    def __len__(self) -> int:
        return len(self.errors)


def _remove_tree(root: str) -> None:
    """Remove whatever is left at root. A missing root is not an error."""
    try:
        st = os.lstat(root)
    except FileNotFoundError:
        return
    if stat.S_ISDIR(st.st_mode):
        shutil.rmtree(root)
    else:
        os.remove(root)


def delete_path_with_progress(
    root: PathLike,
    counter: Optional[ProgressSink] = None,
    base: int = 0,
) -> tuple[int, Optional[OSError]]:
    """
    Delete a file or directory tree, continuing past failures.

    Every non-directory entry is unlinked one at a time so progress can be
    published; symlinks are removed, never followed. Unreadable directories
    are skipped, anything else that fails is skipped too. A final recursive
    removal then clears the emptied directories and the root itself.

    Args:
        root: Path to delete
        counter: Optional counter (or callback) receiving the absolute
            number of files removed so far
        base: Offset added to every published value, used when several
            roots share one counter

    Returns:
        Tuple of (files_deleted, first_error). The count is always the
        number of files actually removed, even when an error is returned.
    """
    root = os.fspath(root)
    count = 0
    first_error: Optional[OSError] = None

    def record(error: OSError) -> None:
        nonlocal first_error
        if first_error is None:
            first_error = error

    def remove_file(path: str) -> None:
        nonlocal count
        try:
            os.remove(path)
        except OSError as e:
            record(e)
            return
        count += 1
        if counter is not None:
            counter(base + count)

    try:
        root_stat = os.lstat(root)
    except OSError as e:
        record(e)
        root_stat = None

    if root_stat is not None and not stat.S_ISDIR(root_stat.st_mode):
        remove_file(root)
    elif root_stat is not None:
        stack = [root]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except PermissionError as e:
                # Whole subtree is out of reach, siblings are still walked
                record(e)
                continue
            except OSError as e:
                record(e)
                continue

            subdirs = []
            for entry in entries:
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError as e:
                    record(e)
                    continue
                if is_dir:
                    subdirs.append(entry.path)
                else:
                    remove_file(entry.path)

            # Reversed so the first subdirectory is visited next
            stack.extend(reversed(subdirs))

    # Structural failures never mask an earlier, more specific error
    try:
        _remove_tree(root)
    except OSError as e:
        record(e)

    return count, first_error


def delete_paths(
    roots: Iterable[PathLike],
    counter: Optional[ProgressSink] = None,
) -> DeletionResult:
    """
    Delete several roots one after another and combine the outcome.

    Roots run strictly in order, each finishing its cleanup before the next
    starts, so the shared counter only ever has one writer.

    Args:
        roots: Paths to delete
        counter: Optional counter (or callback) for live progress

    Returns:
        DeletionResult with the total count, an aggregate error if any root
        failed, and the refresh hint (the root itself for a single root,
        "" when several roots were touched)
    """
    roots = [os.fspath(r) for r in roots]
    logger.info("Deleting {} path(s)", len(roots))

    total = 0
    errors: list[str] = []
    causes: list[OSError] = []

    for root in roots:
        count, error = delete_path_with_progress(root, counter, base=total)
        total += count
        if error is not None:
            logger.warning("Deleting {} stopped short after {} file(s): {}", root, count, error)
            errors.append(str(error))
            causes.append(error)
        else:
            logger.debug("Deleted {} ({} files)", root, count)

    result_err = MultiDeleteError(errors, causes) if errors else None

    logger.info("Deletion finished: {} file(s) removed, {} error(s)", total, len(errors))
    return DeletionResult(
        done=True,
        count=total,
        err=result_err,
        path=roots[0] if len(roots) == 1 else "",
    )


def delete_path(root: PathLike, counter: Optional[ProgressSink] = None) -> DeletionResult:
    """Delete a single root. Same as delete_paths with one element."""
    return delete_paths([root], counter)


def run_request(request: DeletionRequest) -> DeletionResult:
    """Execute a DeletionRequest synchronously."""
    return delete_paths(request.roots, request.counter)


def submit_delete(executor: Executor, request: DeletionRequest) -> "Future[DeletionResult]":
    """
    Dispatch a deletion as a background task.

    The returned future resolves exactly once with the DeletionResult;
    progress in the meantime is read from request.counter.
    """
    if request.counter is not None:
        request.counter.reset()
    return executor.submit(run_request, request)
