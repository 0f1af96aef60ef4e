"""Polling file-change watcher.

A daemon thread rescans the watched tree every ``interval`` seconds and
reports files whose modification time or size changed. The first scan only
records a baseline. Deleted files are forgotten silently.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from clawde.comments.patterns import is_supported
from clawde.git.ignore import should_ignore_directory

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


def is_temp_file(path: str) -> bool:
    """Check for editor backup, swap and lock files."""
    return (
        path.endswith("~")
        or path.endswith(".tmp")
        or path.endswith(".swp")
        or ".#" in os.path.basename(path)
    )


class PollingFileWatcher:
    """Watch a directory tree for changes to files with known comment syntax.

    Args:
        root: Directory to watch.
        on_change: Called with the path of each new or modified file.
        ignore: Optional predicate for paths to skip.
        interval: Seconds between scans.

    """

    def __init__(
        self,
        root: str | Path,
        on_change: Callable[[str], None],
        ignore: Callable[[Path], bool] | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.root = str(root)
        self.on_change = on_change
        self.ignore = ignore
        self.interval = interval
        self._snapshot: dict[str, tuple[int, int]] | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _scan(self) -> dict[str, tuple[int, int]]:
        snapshot: dict[str, tuple[int, int]] = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [
                name
                for name in dirnames
                if not should_ignore_directory(name)
                and not (self.ignore is not None and self.ignore(Path(dirpath, name)))
            ]
            for name in filenames:
                path = os.path.join(dirpath, name)
                if is_temp_file(path) or not is_supported(name):
                    continue
                if self.ignore is not None and self.ignore(Path(path)):
                    continue
                try:
                    st = os.stat(path)
                except OSError:
                    continue
                snapshot[path] = (st.st_mtime_ns, st.st_size)
        return snapshot

    def poll_once(self) -> list[str]:
        """Run one scan and report changes since the previous scan.

        Returns:
            Sorted paths of new or modified files (empty on the first scan).

        """
        current = self._scan()
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            logger.debug("Watching %d files under %s", len(current), self.root)
            return []

        changed = sorted(path for path, sig in current.items() if previous.get(path) != sig)
        for path in changed:
            logger.debug("File change detected: %s", path)
            try:
                self.on_change(path)
            except Exception:
                logger.exception("Change handler failed for %s", path)
        return changed

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll_once()

    def start(self) -> None:
        """Take the baseline scan and start polling in a daemon thread."""
        if not os.path.isdir(self.root):
            raise FileNotFoundError(f"Watch directory does not exist: {self.root}")
        if self._thread is not None:
            return
        self.poll_once()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="clawde-watcher", daemon=True)
        self._thread.start()
        logger.info("Watching %s for marker comments", self.root)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop polling and wait for the thread to exit."""
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        logger.debug("File watcher stopped")
