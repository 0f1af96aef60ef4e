"""Concurrent pre-filter search for files that may hold marker comments.

The walk runs on the calling thread and submits each candidate to a thread
pool, with a semaphore capping how many files are in flight. Each task reads
one file and runs a cheap substring test; the pool is shut down (waiting for
every task) before results are collected. Full extraction must still run on
each match.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from clawde.comments.markers import contains_marker_text
from clawde.comments.patterns import is_supported
from clawde.core.exceptions import SearchError
from clawde.git.ignore import should_ignore_directory

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 10000
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
DEFAULT_WORKERS = 8

# In-flight files per worker
_QUEUE_FACTOR = 4


def file_may_have_markers(path: str, max_file_size: int = DEFAULT_MAX_FILE_SIZE) -> bool:
    """Check a file for marker text without parsing comments.

    Args:
        path: File to check.
        max_file_size: Files larger than this are skipped.

    Returns:
        True if the content contains ``ai?``, ``ai!`` or ``ai:`` in any
        case. Unreadable and oversized files return False.

    """
    try:
        size = os.stat(path).st_size
    except OSError as e:
        logger.warning("Failed to stat %s: %s", path, e)
        return False
    if size > max_file_size:
        logger.debug("Skipping large file %s (%d bytes)", path, size)
        return False

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        logger.warning("Failed to read %s: %s", path, e)
        return False

    return contains_marker_text(data.decode("utf-8", errors="replace"))


def _iter_candidates(
    root: str,
    ignore: Callable[[Path], bool] | None,
    max_files: int,
) -> Iterator[str]:
    count = 0
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        kept = []
        for name in sorted(dirnames):
            full = os.path.join(dirpath, name)
            if should_ignore_directory(name) or (ignore is not None and ignore(Path(full))):
                logger.debug("Skipping ignored directory: %s", full)
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            if not is_supported(name):
                continue
            full = os.path.join(dirpath, name)
            if ignore is not None and ignore(Path(full)):
                continue
            count += 1
            if count > max_files:
                logger.warning("Stopping file search: reached limit of %d files", max_files)
                return
            yield full


def _log_walk_error(error: OSError) -> None:
    logger.warning("Error accessing path %s: %s", error.filename, error)


def find_candidate_files(
    root: str | Path,
    ignore: Callable[[Path], bool] | None = None,
    *,
    max_files: int = DEFAULT_MAX_FILES,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    workers: int = DEFAULT_WORKERS,
) -> list[str]:
    """Find files under a directory that may contain marker comments.

    Args:
        root: Directory to walk.
        ignore: Predicate returning True for paths to skip (directories
            are pruned, files dropped). Built-in directory pruning always
            applies.
        max_files: Stop after this many candidate files.
        max_file_size: Skip files larger than this many bytes.
        workers: Number of reader threads.

    Returns:
        Sorted paths of matching files.

    Raises:
        SearchError: If root is not an existing directory.

    """
    root_str = str(root)
    if not os.path.isdir(root_str):
        raise SearchError(f"Search root is not a directory: {root_str}")

    workers = max(1, workers)
    slots = threading.BoundedSemaphore(workers * _QUEUE_FACTOR)
    submitted: list[tuple[str, Future[bool]]] = []

    logger.debug("Searching %s for marker comments with %d workers", root_str, workers)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="clawde-search") as executor:
        for path in _iter_candidates(root_str, ignore, max_files):
            slots.acquire()
            future = executor.submit(file_may_have_markers, path, max_file_size)
            future.add_done_callback(lambda _: slots.release())
            submitted.append((path, future))

    matches = sorted(path for path, future in submitted if future.result())
    logger.debug("Found %d files with marker comments", len(matches))
    return matches
