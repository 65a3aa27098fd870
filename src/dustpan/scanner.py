"""Directory listing and sizing for the dustpan browser."""

import os
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from loguru import logger

from dustpan.models import DirEntry, DiskUsage


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def get_directory_size(path: Path, max_depth: int = 64) -> tuple[int, int, int]:
    """
    Directory size calculation using os.scandir with a depth limit.

    Unreadable entries are skipped and symlinks are not followed.

    Args:
        path: Directory to scan
        max_depth: Maximum recursion depth

    Returns:
        Tuple of (total_bytes, file_count, dir_count)
    """
    total_size = 0
    file_count = 0
    dir_count = 0

    stack = [(str(path), 0)]
    while stack:
        current, depth = stack.pop()
        if depth > max_depth:
            continue
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            dir_count += 1
                            stack.append((entry.path, depth + 1))
                        else:
                            total_size += entry.stat(follow_symlinks=False).st_size
                            file_count += 1
                    except OSError:
                        continue
        except OSError:
            # Unreadable directories count as empty
            continue

    return total_size, file_count, dir_count


def _size_entry(entry: os.DirEntry) -> DirEntry:
    if entry.is_dir(follow_symlinks=False):
        size, files, _ = get_directory_size(Path(entry.path))
        return DirEntry(
            name=entry.name,
            path=entry.path,
            size_bytes=size,
            file_count=files,
            is_dir=True,
        )
    return DirEntry(
        name=entry.name,
        path=entry.path,
        size_bytes=entry.stat(follow_symlinks=False).st_size,
        file_count=1,
        is_dir=False,
    )


def list_directory(path: Path, show_hidden: bool = True, max_workers: int = 6) -> list[DirEntry]:
    """
    List the children of a directory with their sizes.

    Subdirectories are sized in parallel.

    Args:
        path: Directory to list
        show_hidden: Include entries starting with "."
        max_workers: Threads used for sizing

    Returns:
        Entries sorted by size (largest first), then by name

    Raises:
        OSError: if path itself cannot be listed
    """
    path = Path(path)
    with os.scandir(path) as it:
        children = [e for e in it if show_hidden or not e.name.startswith(".")]

    results: list[DirEntry] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_entry = {executor.submit(_size_entry, e): e for e in children}

        for future in as_completed(future_to_entry):
            entry = future_to_entry[future]
            try:
                results.append(future.result())
            except OSError as e:
                logger.debug("Could not size {}: {}", entry.path, e)
                results.append(
                    DirEntry(
                        name=entry.name,
                        path=entry.path,
                        size_bytes=0,
                        is_dir=False,
                        error=str(e),
                    )
                )

    results.sort(key=lambda r: (-r.size_bytes, r.name))
    return results


def get_disk_usage(mount_point: str = "/") -> DiskUsage:
    """
    Get overall disk usage for a mount point.

    Args:
        mount_point: Mount point to check (default: /)

    Returns:
        DiskUsage with total, used, and free bytes
    """
    usage = shutil.disk_usage(mount_point)
    return DiskUsage(
        total_bytes=usage.total,
        used_bytes=usage.used,
        free_bytes=usage.free,
        mount_point=mount_point,
    )
