"""Tests for comments/extractor.py: marker comment extraction."""

# NO_CLAWDE: this file is full of marker examples

from __future__ import annotations

from pathlib import Path

import pytest

from clawde.comments.extractor import (
    MAX_COMMENT_LENGTH,
    MAX_FILE_SIZE,
    MAX_TOTAL_LINES,
    TRUNCATION_SUFFIX,
    extract_comments,
    extract_comments_from_file,
    extract_context_lines,
    truncate_content,
)
from clawde.comments.types import ActionType
from clawde.core.exceptions import ExtractionError


class TestSingleLineComments:
    """Single-line comment detection across dialects."""

    def test_go_question(self) -> None:
        content = "package main\n\n// This is a test comment AI?\nfunc main() {}"

        records = extract_comments("test.go", content)

        assert len(records) == 1
        record = records[0]
        assert record.start_line == 3
        assert record.end_line is None
        assert record.action_type is ActionType.QUESTION
        assert record.content == "This is a test comment AI?"
        assert record.raw_text == "// This is a test comment AI?"

    def test_go_command(self) -> None:
        records = extract_comments("test.go", "package main\n\n// Fix this function AI!\nfunc main() {}")

        assert len(records) == 1
        assert records[0].action_type is ActionType.COMMAND
        assert records[0].content == "Fix this function AI!"

    def test_go_context(self) -> None:
        records = extract_comments(
            "test.go", "package main\n\n// AI: there's the placeholder\nfunc main() {}"
        )

        assert len(records) == 1
        assert records[0].action_type is ActionType.CONTEXT
        assert records[0].content == "AI: there's the placeholder"

    def test_indented_comment(self) -> None:
        records = extract_comments(
            "test.go", "package main\n\nfunc main() {\n    // Indented comment AI?\n}"
        )

        assert len(records) == 1
        assert records[0].start_line == 4
        assert records[0].content == "Indented comment AI?"

    def test_separate_comments_are_separate_records(self) -> None:
        records = extract_comments("test.go", "// First comment AI?\n\n// Second comment AI!\n\nfunc main() {}")

        assert [r.start_line for r in records] == [1, 3]
        assert [r.action_type for r in records] == [ActionType.QUESTION, ActionType.COMMAND]

    @pytest.mark.parametrize(
        ("path", "content", "expected"),
        [
            ("test.js", "console.log('hello');\n// This needs improvement AI?\nfunction test() {}", ActionType.QUESTION),
            ("test.js", "// Refactor this function AI!\nfunction test() {}", ActionType.COMMAND),
            ("test.js", "// AI: check this logic\nfunction test() {}", ActionType.CONTEXT),
            ("test.py", "print('hello')\n# This needs improvement AI?\ndef test():\n    pass", ActionType.QUESTION),
            ("test.py", "# Refactor this function AI!\ndef test():\n    pass", ActionType.COMMAND),
            ("test.py", "# AI: there's the placeholder\ndef hello_world():\n    pass", ActionType.CONTEXT),
            ("script.sh", "echo hi\n# Quote this variable AI!", ActionType.COMMAND),
            ("config.yaml", "key: value  # why is this here AI?", ActionType.QUESTION),
            ("index.php", "<?php\n# Explain this AI?\n", ActionType.QUESTION),
            ("index.php", "<?php\n// Clean this up AI!\n", ActionType.COMMAND),
        ],
    )
    def test_dialects(self, path: str, content: str, expected: ActionType) -> None:
        records = extract_comments(path, content)

        assert len(records) == 1
        assert records[0].action_type is expected

    @pytest.mark.parametrize(
        "content",
        [
            "package main\n\n// This is a regular comment\nfunc main() {}",
            "// This AI? comment has marker in middle\nfunc main() {}",
            "// This AI? comment also has AI! marker",
            "// CommentAI?",
            'fmt.Println("This AI? is in a string")',
            "// Traveling to hawaii?",
            "// The brave samurai!",
            "// Welcome to Hawaii:",
            "// This comment ends with AI:",
        ],
    )
    def test_no_valid_marker(self, content: str) -> None:
        assert extract_comments("test.go", content) == []

    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            ("// This is a test comment ai?", ActionType.QUESTION),
            ("// Fix this function ai!", ActionType.COMMAND),
            ("// What should this do Ai?", ActionType.QUESTION),
            ("// Refactor this aI!", ActionType.COMMAND),
            ("// ai: needs attention", ActionType.CONTEXT),
            ("// AI? What should this do?", ActionType.QUESTION),
            ("// AI: What should this function do?", ActionType.CONTEXT),
        ],
    )
    def test_case_insensitive_markers(self, content: str, expected: ActionType) -> None:
        records = extract_comments("test.go", content)

        assert len(records) == 1
        assert records[0].action_type is expected

    def test_python_word_ending_in_ai_does_not_match(self) -> None:
        assert extract_comments("test.py", "# Visiting hawaii?") == []


class TestGrouping:
    """Consecutive whole-line comments form one block."""

    def test_grouped_block_takes_highest_priority(self) -> None:
        content = "// First comment ai?\n// Second comment AI!\n// Third comment Ai?"

        records = extract_comments("test.go", content)

        assert len(records) == 1
        record = records[0]
        assert record.start_line == 1
        assert record.end_line == 3
        assert record.action_type is ActionType.COMMAND
        assert record.content == "First comment ai? Second comment AI! Third comment Ai?"
        assert record.raw_text == content

    def test_marker_on_its_own_last_line(self) -> None:
        content = (
            "// This is a long comment that\n"
            "// spans multiple lines and asks\n"
            "// a question about the code\n"
            "// AI?"
        )

        records = extract_comments("test.go", content)

        assert len(records) == 1
        assert records[0].action_type is ActionType.QUESTION
        assert records[0].content == (
            "This is a long comment that spans multiple lines and asks "
            "a question about the code AI?"
        )
        assert records[0].location == "lines 1-4"

    @pytest.mark.parametrize(
        ("content", "expected_type", "expected_content"),
        [
            (
                "// AI: This function needs optimization AI!",
                ActionType.COMMAND,
                "AI: This function needs optimization AI!",
            ),
            (
                "// AI: some context\n// Fix this please AI!\n// More details here",
                ActionType.COMMAND,
                "AI: some context Fix this please AI! More details here",
            ),
            (
                "// AI: This is the first comment\n// This is a separate comment AI?",
                ActionType.QUESTION,
                "AI: This is the first comment This is a separate comment AI?",
            ),
            (
                "// AI: First marker AI: Second marker AI?",
                ActionType.QUESTION,
                "AI: First marker AI: Second marker AI?",
            ),
            (
                "// This comment AI: has markers in various places AI!",
                ActionType.COMMAND,
                "This comment AI: has markers in various places AI!",
            ),
        ],
    )
    def test_mixed_markers(
        self, content: str, expected_type: ActionType, expected_content: str
    ) -> None:
        records = extract_comments("test.go", content)

        assert len(records) == 1
        assert records[0].action_type is expected_type
        assert records[0].content == expected_content

    def test_blank_line_splits_groups(self) -> None:
        content = "// first part AI?\n\n// second part AI!"

        records = extract_comments("test.go", content)

        assert len(records) == 2
        assert all(r.end_line is None for r in records)

    def test_group_without_marker_is_discarded(self) -> None:
        content = "// just a note\n// and another\nx := 1 // why AI?"

        records = extract_comments("test.go", content)

        assert len(records) == 1
        assert records[0].start_line == 3

    def test_php_tokens_do_not_mix(self) -> None:
        content = "<?php\n// slash comment\n# hash comment AI?\n"

        records = extract_comments("test.php", content)

        assert len(records) == 1
        assert records[0].start_line == 3
        assert records[0].content == "hash comment AI?"


class TestInlineComments:
    """Inline comments are never merged into groups."""

    def test_inline_vs_whole_line(self) -> None:
        content = (
            "package main\n"
            "\n"
            "func test() {\n"
            "    x := 1 // inline comment AI?\n"
            "    // whole line comment starts here\n"
            "    // and continues here\n"
            "    // ending with marker AI!\n"
            "    y := 2 // another inline AI?\n"
            "}"
        )

        records = extract_comments("test.go", content)

        assert [(r.start_line, r.end_line) for r in records] == [(4, None), (5, 7), (8, None)]
        assert [r.action_type for r in records] == [
            ActionType.QUESTION,
            ActionType.COMMAND,
            ActionType.QUESTION,
        ]
        assert records[0].content == "inline comment AI?"
        assert records[0].raw_text == "    x := 1 // inline comment AI?"

    def test_inline_followed_by_whole_line_group(self) -> None:
        content = "x := 1 // inline AI?\n// next line comment\n// continues AI!"

        records = extract_comments("test.go", content)

        assert [(r.start_line, r.end_line) for r in records] == [(1, None), (2, 3)]


class TestMultilineComments:
    """Block comment detection."""

    @pytest.mark.parametrize(
        ("path", "content", "expected_type", "expected_content"),
        [
            (
                "test.go",
                "package main\n\n/*\n * This is a multiline comment\n * that needs clarification AI?\n */\nfunc main() {}",
                ActionType.QUESTION,
                "This is a multiline comment that needs clarification AI?",
            ),
            (
                "test.js",
                "console.log('test');\n\n/*\n * TODO: Fix this implementation AI!\n * It has performance issues\n */",
                ActionType.COMMAND,
                "TODO: Fix this implementation AI! It has performance issues",
            ),
            (
                "test.go",
                "/*\n * AI: this function needs review\n * for performance optimizations\n */",
                ActionType.CONTEXT,
                "AI: this function needs review for performance optimizations",
            ),
            (
                "test.go",
                "/*\n * AI: This needs attention\n * What about error handling AI?\n * Fix the performance issues AI!\n */",
                ActionType.COMMAND,
                "AI: This needs attention What about error handling AI? Fix the performance issues AI!",
            ),
            (
                "test.go",
                "/*\n * This function does something\n * AI!\n * Make it better\n */",
                ActionType.COMMAND,
                "This function does something AI! Make it better",
            ),
            (
                "test.py",
                '"""\nThis is a docstring\nWhat does this function do AI?\nMore documentation here\n"""',
                ActionType.QUESTION,
                "This is a docstring What does this function do AI? More documentation here",
            ),
            (
                "test.py",
                "'''\nExplain the retry policy AI?\n'''",
                ActionType.QUESTION,
                "Explain the retry policy AI?",
            ),
        ],
    )
    def test_block_comments(
        self, path: str, content: str, expected_type: ActionType, expected_content: str
    ) -> None:
        records = extract_comments(path, content)

        assert len(records) == 1
        assert records[0].action_type is expected_type
        assert records[0].content == expected_content

    def test_block_line_numbers(self) -> None:
        content = "package main\n\n/*\n * Clarify this AI?\n */\nfunc main() {}"

        records = extract_comments("test.go", content)

        assert (records[0].start_line, records[0].end_line) == (3, 5)
        assert records[0].raw_text == "/*\n * Clarify this AI?\n */"

    @pytest.mark.parametrize(
        ("path", "content", "expected_content"),
        [
            ("test.go", "/* Quick comment AI? */", "Quick comment AI?"),
            ("test.go", "/* This is a single-line multiline comment AI? */", "This is a single-line multiline comment AI?"),
            ("test.py", '"""This is a single-line docstring AI!"""', "This is a single-line docstring AI!"),
        ],
    )
    def test_same_line_block(self, path: str, content: str, expected_content: str) -> None:
        records = extract_comments(path, content)

        assert len(records) == 1
        assert records[0].content == expected_content
        assert records[0].start_line == records[0].end_line == 1
        assert records[0].location == "line 1"

    @pytest.mark.parametrize(
        ("path", "content"),
        [
            ("test.go", "/**/"),
            ("test.py", '""""""'),
            ("test.go", "/*\n * Regular multiline comment\n * No AI marker here\n */"),
            ("test.go", "/*\n * This comment has AI? in the middle\n * and should not be detected\n */"),
            ("test.go", "/*\n * Unterminated block AI!\n * never closed"),
        ],
    )
    def test_no_record(self, path: str, content: str) -> None:
        assert extract_comments(path, content) == []

    def test_mixed_single_and_block(self) -> None:
        content = (
            "// First part of comment\n"
            "// What should happen here AI?\n"
            "/*\n"
            " * Another comment block\n"
            " * Fix this implementation AI!\n"
            " */"
        )

        records = extract_comments("test.go", content)

        assert [r.content for r in records] == [
            "First part of comment What should happen here AI?",
            "Another comment block Fix this implementation AI!",
        ]
        assert [r.action_type for r in records] == [ActionType.QUESTION, ActionType.COMMAND]

    def test_records_sorted_by_line(self) -> None:
        content = "/*\n * Top block AI?\n */\nx := 1\n// Bottom line AI!"

        records = extract_comments("test.go", content)

        assert [r.start_line for r in records] == [1, 5]


class TestContextLines:
    """Surrounding source lines attached to each record."""

    def test_target_marked_and_window_included(self) -> None:
        content = "line 1\nline 2\nline 3\n// This comment needs attention AI?\nline 5\nline 6\nline 7"

        records = extract_comments("test.go", content)

        context = records[0].context_lines
        assert "> 4: // This comment needs attention AI?" in context
        assert context[0] == "  1: line 1"
        assert context[-1] == "  7: line 7"

    def test_window_is_clamped(self) -> None:
        lines = [f"line {i}" for i in range(1, 21)]

        context = extract_context_lines(lines, 9)

        assert len(context) == 11
        assert context[0] == "  5: line 5"
        assert context[5] == "> 10: line 10"
        assert context[-1] == "  15: line 15"

    def test_window_at_file_start(self) -> None:
        context = extract_context_lines(["a", "b", "c"], 0)

        assert context == ("> 1: a", "  2: b", "  3: c")


class TestLongComments:
    """Content truncation and size limits."""

    LONG_PREFIX = "This is a very long comment that exceeds the maximum comment length. " * 15

    @pytest.mark.parametrize(
        ("content", "expected"),
        [
            (f"// {LONG_PREFIX} AI?", ActionType.QUESTION),
            (f"// {LONG_PREFIX} AI!", ActionType.COMMAND),
            (f"/*\n * {LONG_PREFIX}\n * AI?\n */", ActionType.QUESTION),
            (f"/*\n * {LONG_PREFIX}\n * AI!\n */", ActionType.COMMAND),
            (f"// {LONG_PREFIX}\n// More content here\n// Even more content\n// AI?", ActionType.QUESTION),
        ],
    )
    def test_long_comment_truncated_but_classified(
        self, content: str, expected: ActionType
    ) -> None:
        records = extract_comments("test.go", content)

        assert len(records) == 1
        record = records[0]
        assert record.action_type is expected
        assert record.content.endswith(TRUNCATION_SUFFIX)
        assert len(record.content) == MAX_COMMENT_LENGTH + len(TRUNCATION_SUFFIX)
        assert TRUNCATION_SUFFIX not in record.raw_text
        assert expected.marker in record.raw_text

    def test_truncate_content_keeps_short_text(self) -> None:
        assert truncate_content("short") == "short"
        assert truncate_content("x" * MAX_COMMENT_LENGTH) == "x" * MAX_COMMENT_LENGTH

    def test_over_long_line_is_skipped(self) -> None:
        content = "// " + "x" * (10 * 1024) + " AI!\n// short one AI?"

        records = extract_comments("test.go", content)

        assert len(records) == 1
        assert records[0].start_line == 2

    def test_too_many_lines_returns_empty(self) -> None:
        content = "// Fix AI!\n" + "x\n" * MAX_TOTAL_LINES

        assert extract_comments("test.go", content) == []


class TestExtractComments:
    """Entry point behaviour."""

    def test_unsupported_extension(self) -> None:
        assert extract_comments("test.txt", "// This is a comment AI?") == []

    def test_empty_content(self) -> None:
        assert extract_comments("test.go", "") == []

    def test_bytes_content_is_decoded(self) -> None:
        records = extract_comments("test.go", "// naïve question AI?\n".encode())

        assert records[0].content == "naïve question AI?"

    def test_invalid_utf8_is_replaced(self) -> None:
        records = extract_comments("test.go", b"// bad \xff byte AI!")

        assert len(records) == 1
        assert records[0].action_type is ActionType.COMMAND

    def test_crlf_line_endings(self) -> None:
        records = extract_comments("test.go", "x := 1\r\n// Fix this AI!\r\n")

        assert len(records) == 1
        assert records[0].start_line == 2
        assert records[0].content == "Fix this AI!"

    def test_fingerprint_is_stable(self) -> None:
        content = "// Fix this AI!"

        first = extract_comments("test.go", content)[0]
        second = extract_comments("test.go", content)[0]

        assert first.fingerprint == second.fingerprint
        assert len(first.fingerprint) == 16


class TestExtractCommentsFromFile:
    """File reading wrapper."""

    def test_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "main.go"
        path.write_text("package main\n\n// Explain this AI?\n")

        records = extract_comments_from_file(path)

        assert len(records) == 1
        assert records[0].file_path == str(path)
        assert records[0].start_line == 3

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "gone.go"

        with pytest.raises(ExtractionError) as exc_info:
            extract_comments_from_file(path)

        assert exc_info.value.path == path

    def test_unsupported_file_not_read(self, tmp_path: Path) -> None:
        assert extract_comments_from_file(tmp_path / "missing.txt") == []

    def test_oversized_file_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "big.go"
        with path.open("wb") as f:
            f.write(b"// Fix this AI!\n")
            f.truncate(MAX_FILE_SIZE + 1)

        assert extract_comments_from_file(path) == []
