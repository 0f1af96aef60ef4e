"""Tests for comments/dispatcher.py: processing and sending prompts."""

# NO_CLAWDE: marker examples below

from __future__ import annotations

import os
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from clawde.comments.cache import ProcessedCommentCache
from clawde.comments.dispatcher import (
    CommentProcessor,
    PendingPrompt,
    PromptDispatcher,
    collect_context_records,
)
from clawde.comments.types import ActionType
from clawde.core.exceptions import SessionError


@pytest.fixture()
def cache() -> ProcessedCommentCache:
    return ProcessedCommentCache()


def _write_raw_name(directory: Path, name: bytes, content: str) -> str:
    path = os.path.join(os.fsencode(directory), name)
    with open(path, "wb") as f:
        f.write(content.encode("utf-8"))
    return os.fsdecode(path)


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    (tmp_path / "main.go").write_text("package main\n\n// Fix this function AI!\nfunc main() {}\n")
    (tmp_path / "db.py").write_text("# AI: the database is sqlite\nimport sqlite3\n")
    return tmp_path


class TestCollectContextRecords:
    """Context gathering over a tree."""

    def test_only_context_records(self, project: Path) -> None:
        records = collect_context_records(project)

        assert len(records) == 1
        assert records[0].action_type is ActionType.CONTEXT
        assert records[0].content == "AI: the database is sqlite"


class TestCommentProcessor:
    """Extract, dedup and render."""

    def test_renders_prompt_with_context(self, project: Path, cache: ProcessedCommentCache) -> None:
        processor = CommentProcessor(project, cache)

        prompt = processor.process_file(project / "main.go")

        assert prompt is not None
        assert prompt.text.startswith(f"See {project / 'main.go'} at line 3 and surrounding context.")
        assert "Related context:" in prompt.text
        assert "AI: the database is sqlite" in prompt.text
        assert len(prompt.fingerprints) == 1
        assert prompt.fingerprints[0] in cache

    def test_without_context(self, project: Path, cache: ProcessedCommentCache) -> None:
        processor = CommentProcessor(project, cache, include_context=False)

        prompt = processor.process_file(project / "main.go")

        assert prompt is not None
        assert "Related context:" not in prompt.text

    def test_same_comment_processed_once(self, project: Path, cache: ProcessedCommentCache) -> None:
        processor = CommentProcessor(project, cache, include_context=False)

        assert processor.process_file(project / "main.go") is not None
        assert processor.process_file(project / "main.go") is None

    def test_edited_comment_processed_again(
        self, project: Path, cache: ProcessedCommentCache
    ) -> None:
        processor = CommentProcessor(project, cache, include_context=False)
        processor.process_file(project / "main.go")

        (project / "main.go").write_text("package main\n\n// Fix it differently AI!\n")

        assert processor.process_file(project / "main.go") is not None

    def test_context_only_file_yields_nothing(
        self, project: Path, cache: ProcessedCommentCache
    ) -> None:
        processor = CommentProcessor(project, cache)

        assert processor.process_file(project / "db.py") is None
        assert len(cache) == 0

    def test_several_comments_batched(self, tmp_path: Path, cache: ProcessedCommentCache) -> None:
        path = tmp_path / "app.js"
        path.write_text("// Why is this here AI?\nlet a = 1;\n\n// Remove this AI!\nlet b = 2;\n")
        processor = CommentProcessor(tmp_path, cache, include_context=False)

        prompt = processor.process_file(path)

        assert prompt is not None
        assert "YOU MUST replace the AI! marker" in prompt.text
        assert f"- {path} at line 1" in prompt.text
        assert f"- {path} at line 4" in prompt.text
        assert len(prompt.fingerprints) == 2

    def test_unreadable_file_logged(
        self, tmp_path: Path, cache: ProcessedCommentCache, caplog: pytest.LogCaptureFixture
    ) -> None:
        processor = CommentProcessor(tmp_path, cache)

        assert processor.process_file(tmp_path / "deleted.go") is None
        assert "Cannot process" in caplog.text

    def test_undecodable_filename_in_tree(
        self, project: Path, cache: ProcessedCommentCache
    ) -> None:
        _write_raw_name(project, b"caf\xe9.go", "// AI: shared note\n")
        processor = CommentProcessor(project, cache)

        prompt = processor.process_file(project / "main.go")

        assert prompt is not None
        assert "AI: shared note" in prompt.text
        assert len(cache) == 1

    def test_undecodable_filename_with_command(
        self, tmp_path: Path, cache: ProcessedCommentCache
    ) -> None:
        path = _write_raw_name(tmp_path, b"caf\xe9.go", "// Fix this AI!\n")
        processor = CommentProcessor(tmp_path, cache, include_context=False)

        prompt = processor.process_file(path)

        assert prompt is not None
        assert prompt.text.startswith(f"See {path} at line 1")

    def test_claims_released_when_context_gathering_fails(
        self, project: Path, cache: ProcessedCommentCache
    ) -> None:
        processor = CommentProcessor(project, cache)

        with patch(
            "clawde.comments.dispatcher.collect_context_records",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(RuntimeError):
                processor.process_file(project / "main.go")

        assert len(cache) == 0
        assert processor.process_file(project / "main.go") is not None

    def test_handle_file_change_forwards_prompt(
        self, project: Path, cache: ProcessedCommentCache
    ) -> None:
        received: list[PendingPrompt] = []
        processor = CommentProcessor(project, cache, received.append, include_context=False)

        processor.handle_file_change(project / "main.go")
        processor.handle_file_change(project / "main.go")

        assert len(received) == 1


class TestPromptDispatcher:
    """Background sending."""

    def test_sends_in_order(self, cache: ProcessedCommentCache) -> None:
        sent: list[str] = []
        dispatcher = PromptDispatcher(sent.append, cache)

        dispatcher.start()
        dispatcher.submit(PendingPrompt("first", ("a",)))
        dispatcher.submit(PendingPrompt("second", ("b",)))
        dispatcher.stop()

        assert sent == ["first", "second"]
        assert not dispatcher.is_running

    def test_failed_send_releases_claims(self, cache: ProcessedCommentCache) -> None:
        cache.claim("a")
        cache.claim("b")

        def send(text: str) -> None:
            raise SessionError("closed")

        dispatcher = PromptDispatcher(send, cache)
        dispatcher.start()
        dispatcher.submit(PendingPrompt("text", ("a", "b")))
        dispatcher.stop()

        assert "a" not in cache
        assert "b" not in cache

    def test_unexpected_send_error_keeps_worker_alive(
        self, cache: ProcessedCommentCache
    ) -> None:
        cache.claim("a")
        cache.claim("b")
        sent: list[str] = []

        def send(text: str) -> None:
            if text == "broken":
                raise ValueError("cannot encode prompt")
            sent.append(text)

        dispatcher = PromptDispatcher(send, cache)
        dispatcher.start()
        dispatcher.submit(PendingPrompt("broken", ("a",)))
        dispatcher.submit(PendingPrompt("next", ("b",)))
        dispatcher.stop()

        assert sent == ["next"]
        assert "a" not in cache
        assert "b" in cache

    def test_successful_send_keeps_claims(self, cache: ProcessedCommentCache) -> None:
        cache.claim("a")
        dispatcher = PromptDispatcher(lambda text: None, cache)

        dispatcher.start()
        dispatcher.submit(PendingPrompt("text", ("a",)))
        dispatcher.stop()

        assert "a" in cache

    def test_sends_from_worker_thread(self, cache: ProcessedCommentCache) -> None:
        threads: list[threading.Thread] = []
        dispatcher = PromptDispatcher(lambda text: threads.append(threading.current_thread()), cache)

        dispatcher.start()
        dispatcher.submit(PendingPrompt("text", ()))
        dispatcher.stop()

        assert threads[0] is not threading.current_thread()

    def test_stop_without_start(self, cache: ProcessedCommentCache) -> None:
        PromptDispatcher(lambda text: None, cache).stop()
