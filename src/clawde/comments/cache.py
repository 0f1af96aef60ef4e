"""In-memory dedup cache of processed comment fingerprints.

The cache lives for the process lifetime and is never persisted. Callers
on concurrent paths (watcher thread, dispatcher worker) use claim() so the
check and the mark happen under one lock acquisition.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class ProcessedCommentCache:
    """Thread-safe set of comment fingerprints that were already prompted."""

    def __init__(self) -> None:
        self._fingerprints: set[str] = set()
        self._lock = threading.Lock()

    def is_processed(self, fingerprint: str) -> bool:
        """Return True if the fingerprint has been marked."""
        with self._lock:
            return fingerprint in self._fingerprints

    def mark_processed(self, fingerprint: str) -> None:
        """Record a fingerprint as processed."""
        with self._lock:
            self._fingerprints.add(fingerprint)

    def clear_processed(self) -> None:
        """Forget every fingerprint."""
        with self._lock:
            count = len(self._fingerprints)
            self._fingerprints.clear()
        logger.debug("Cleared %d processed fingerprints", count)

    def claim(self, fingerprint: str) -> bool:
        """Atomically mark a fingerprint unless it is already marked.

        Args:
            fingerprint: Fingerprint of the record about to be dispatched.

        Returns:
            True if the caller now owns the record, False if it was
            processed before.

        """
        with self._lock:
            if fingerprint in self._fingerprints:
                return False
            self._fingerprints.add(fingerprint)
            return True

    def release(self, fingerprint: str) -> None:
        """Undo a claim after a failed dispatch so the record can retry."""
        with self._lock:
            self._fingerprints.discard(fingerprint)

    def __len__(self) -> int:
        with self._lock:
            return len(self._fingerprints)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._fingerprints
