"""Comment dispatch pipeline.

CommentProcessor turns a changed file into at most one prompt:
extract → keep actionable records → claim in the dedup cache → render.
PromptDispatcher owns a background thread that drains rendered prompts
into the wrapped program, releasing claims when a send fails so the same
comment is retried on the next change.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from clawde.comments.cache import ProcessedCommentCache
from clawde.comments.extractor import extract_comments_from_file
from clawde.comments.prompts import render_batch_prompt
from clawde.comments.search import DEFAULT_MAX_FILES, DEFAULT_WORKERS, find_candidate_files
from clawde.comments.types import ActionType, CommentRecord
from clawde.core.exceptions import ExtractionError, SearchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PendingPrompt:
    """Rendered prompt waiting to be sent.

    Attributes:
        text: Prompt text.
        fingerprints: Claimed fingerprints covered by the prompt.

    """

    text: str
    fingerprints: tuple[str, ...]


def collect_context_records(
    root: str | Path,
    ignore: Callable[[Path], bool] | None = None,
    *,
    max_files: int = DEFAULT_MAX_FILES,
    workers: int = DEFAULT_WORKERS,
) -> list[CommentRecord]:
    """Gather every AI: context comment under a directory.

    Files that fail to read are logged and skipped.

    Args:
        root: Directory to search.
        ignore: Path predicate passed to the search.
        max_files: Search file cap.
        workers: Search worker threads.

    Returns:
        Context records ordered by file path then line.

    """
    records: list[CommentRecord] = []
    for path in find_candidate_files(root, ignore, max_files=max_files, workers=workers):
        try:
            found = extract_comments_from_file(path)
        except ExtractionError as e:
            logger.warning("Skipping %s: %s", e.path, e)
            continue
        records.extend(r for r in found if r.action_type is ActionType.CONTEXT)
    return records


class CommentProcessor:
    """Turn file-change notifications into rendered prompts.

    Args:
        root: Watched directory, searched for related context.
        cache: Dedup cache shared with the dispatcher.
        on_prompt: Called with each rendered prompt (typically
            PromptDispatcher.submit).
        include_context: Append AI: comments from the tree to prompts.
        ignore: Path predicate for the context search.
        max_search_files: Context search file cap.
        search_workers: Context search worker threads.

    """

    def __init__(
        self,
        root: str | Path,
        cache: ProcessedCommentCache,
        on_prompt: Callable[[PendingPrompt], None] | None = None,
        *,
        include_context: bool = True,
        ignore: Callable[[Path], bool] | None = None,
        max_search_files: int = DEFAULT_MAX_FILES,
        search_workers: int = DEFAULT_WORKERS,
    ) -> None:
        self.root = Path(root)
        self.cache = cache
        self.on_prompt = on_prompt
        self.include_context = include_context
        self.ignore = ignore
        self.max_search_files = max_search_files
        self.search_workers = search_workers

    def _context_records(self) -> list[CommentRecord]:
        if not self.include_context:
            return []
        try:
            return collect_context_records(
                self.root,
                self.ignore,
                max_files=self.max_search_files,
                workers=self.search_workers,
            )
        except SearchError as e:
            logger.warning("Context search failed: %s", e)
            return []

    def process_file(self, path: str | Path) -> PendingPrompt | None:
        """Extract, dedup and render the marker comments of one file.

        Args:
            path: Changed file.

        Returns:
            PendingPrompt, or None when the file holds no new actionable
            comments.

        Raises:
            MarkerInvariantError: If rendering hits an impossible record.
                Claims taken for this file are released before any error
                propagates.

        """
        try:
            records = extract_comments_from_file(path)
        except ExtractionError as e:
            logger.warning("Cannot process %s: %s", e.path, e)
            return None

        claimed: list[CommentRecord] = []
        for record in records:
            if not record.action_type.is_actionable:
                continue
            if self.cache.claim(record.fingerprint):
                claimed.append(record)
            else:
                logger.debug(
                    "Skipping processed comment at %s:%d", record.file_path, record.start_line
                )
        if not claimed:
            return None

        fingerprints = tuple(r.fingerprint for r in claimed)
        try:
            text = render_batch_prompt(claimed, self._context_records())
        except Exception:
            for fingerprint in fingerprints:
                self.cache.release(fingerprint)
            raise

        logger.info("Rendered prompt for %d comment(s) in %s", len(claimed), path)
        return PendingPrompt(text=text, fingerprints=fingerprints)

    def handle_file_change(self, path: str | Path) -> None:
        """Watcher callback: process a file and hand off its prompt."""
        prompt = self.process_file(path)
        if prompt is not None and self.on_prompt is not None:
            self.on_prompt(prompt)


class PromptDispatcher:
    """Background sender for rendered prompts.

    Prompts are sent one at a time in submission order. stop() sends every
    prompt queued before it was called.

    Args:
        send: Writes one prompt to the wrapped program.
        cache: Dedup cache whose claims are released on send failure.

    """

    def __init__(self, send: Callable[[str], None], cache: ProcessedCommentCache) -> None:
        self._send = send
        self._cache = cache
        self._queue: queue.Queue[PendingPrompt | None] = queue.Queue()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """True while the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread (no-op if already running)."""
        if self.is_running:
            return
        self._thread = threading.Thread(
            target=self._run, name="clawde-dispatcher", daemon=True
        )
        self._thread.start()
        logger.debug("Prompt dispatcher started")

    def submit(self, prompt: PendingPrompt) -> None:
        """Queue a prompt for sending."""
        self._queue.put(prompt)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Send queued prompts, then stop the worker thread."""
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Prompt dispatcher did not stop within %.1fs", timeout or 0.0)
        else:
            logger.debug("Prompt dispatcher stopped")
        self._thread = None

    def _run(self) -> None:
        while True:
            prompt = self._queue.get()
            if prompt is None:
                return
            try:
                self._send(prompt.text)
            except Exception:
                logger.exception("Failed to send prompt")
                for fingerprint in prompt.fingerprints:
                    self._cache.release(fingerprint)
            else:
                logger.debug("Sent prompt covering %d comment(s)", len(prompt.fingerprints))
