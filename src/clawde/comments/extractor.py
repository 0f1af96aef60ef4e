"""Marker comment extraction pipeline.

Pipeline: look up comment pattern → opt-out gate → single-line pass and
block pass → classify → truncate, add context, fingerprint → merge in
line order.

Single-line pass (one forward scan, no claimed-line bookkeeping)::

    Idle --whole-line comment--> InGroup --same-token whole-line--> InGroup
    InGroup --anything else--> flush group --> Idle (line re-examined)
    Idle --inline comment--> emit single record

Inline comments are never merged into a group, even when the next line
starts one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path

from clawde.comments.markers import classify_lines
from clawde.comments.opt_out import has_opt_out
from clawde.comments.patterns import CommentPattern, MultilineTokens, pattern_for_path
from clawde.comments.scanner import (
    MAX_LINE_LENGTH,
    LineComment,
    clean_block_lines,
    iter_block_comments,
    scan_line_comment,
)
from clawde.comments.types import ActionType, CommentRecord
from clawde.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

# Size limits to keep extraction bounded on huge or generated files
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
MAX_TOTAL_LINES = 50000
MAX_COMMENT_LENGTH = 1000
TRUNCATION_SUFFIX = "...(truncated)"

# Lines of source shown on each side of a comment
CONTEXT_WINDOW = 5


def truncate_content(content: str) -> str:
    """Cap comment content at MAX_COMMENT_LENGTH characters."""
    if len(content) <= MAX_COMMENT_LENGTH:
        return content
    return content[:MAX_COMMENT_LENGTH] + TRUNCATION_SUFFIX


def extract_context_lines(
    lines: Sequence[str],
    target_index: int,
    size: int = CONTEXT_WINDOW,
) -> tuple[str, ...]:
    """Return numbered source lines around a target line.

    Args:
        lines: All file lines.
        target_index: 0-based index of the line to center on.
        size: Lines to include before and after.

    Returns:
        Lines formatted ``"  N: text"``, with the target as ``"> N: text"``.

    """
    start = max(target_index - size, 0)
    end = min(target_index + size + 1, len(lines))
    context: list[str] = []
    for i in range(start, end):
        prefix = "> " if i == target_index else "  "
        context.append(f"{prefix}{i + 1}: {lines[i]}")
    return tuple(context)


def _build_record(
    file_path: str,
    lines: Sequence[str],
    start_index: int,
    end_line: int | None,
    content_lines: Sequence[str],
    raw_text: str,
    action_type: ActionType,
) -> CommentRecord:
    return CommentRecord(
        file_path=file_path,
        start_line=start_index + 1,
        end_line=end_line,
        content=truncate_content(" ".join(content_lines)),
        raw_text=raw_text,
        action_type=action_type,
        context_lines=extract_context_lines(lines, start_index),
    )


def _group_record(
    file_path: str,
    lines: Sequence[str],
    group: Sequence[LineComment],
) -> CommentRecord | None:
    texts = [c.text for c in group if c.text]
    action_type = classify_lines(texts)
    if action_type is None:
        return None

    first = group[0]
    end_line = group[-1].index + 1 if len(group) > 1 else None
    record = _build_record(
        file_path,
        lines,
        first.index,
        end_line,
        texts,
        "\n".join(c.line for c in group),
        action_type,
    )
    if record.is_multiline:
        logger.debug(
            "Found comment block at %s:%d-%d - %s",
            file_path,
            record.start_line,
            record.end_line,
            record.content,
        )
    else:
        logger.debug("Found comment at %s:%d - %s", file_path, record.start_line, record.content)
    return record


def _inline_record(
    file_path: str,
    lines: Sequence[str],
    comment: LineComment,
) -> CommentRecord | None:
    action_type = classify_lines([comment.text])
    if action_type is None:
        return None
    logger.debug("Found inline comment at %s:%d - %s", file_path, comment.index + 1, comment.text)
    return _build_record(
        file_path, lines, comment.index, None, [comment.text], comment.line, action_type
    )


def iter_single_line_records(
    file_path: str,
    lines: Sequence[str],
    pattern: CommentPattern,
) -> Iterator[CommentRecord]:
    """Yield marker records from single-line comments.

    Consecutive whole-line comments sharing a token form one block whether
    or not each line carries a marker; inline comments stand alone.

    Args:
        file_path: Path reported on the records.
        lines: File content split into lines.
        pattern: Comment pattern of the file type.

    Yields:
        CommentRecord per marker-bearing block, in line order.

    """
    if not pattern.single_line:
        return

    group: list[LineComment] = []
    for i, line in enumerate(lines):
        comment: LineComment | None = None
        if len(line) > MAX_LINE_LENGTH:
            logger.debug(
                "Skipping line %d in %s: length %d exceeds limit %d",
                i + 1,
                file_path,
                len(line),
                MAX_LINE_LENGTH,
            )
        else:
            comment = scan_line_comment(i, line, pattern.single_line)

        if (
            group
            and comment is not None
            and comment.whole_line
            and comment.token == group[0].token
        ):
            group.append(comment)
            continue

        if group:
            record = _group_record(file_path, lines, group)
            if record is not None:
                yield record
            group = []

        if comment is None:
            continue
        if comment.whole_line:
            group = [comment]
        else:
            record = _inline_record(file_path, lines, comment)
            if record is not None:
                yield record

    if group:
        record = _group_record(file_path, lines, group)
        if record is not None:
            yield record


def iter_multiline_records(
    file_path: str,
    lines: Sequence[str],
    pattern: CommentPattern,
    pair: MultilineTokens,
) -> Iterator[CommentRecord]:
    """Yield marker records from block comments of one token pair.

    Args:
        file_path: Path reported on the records.
        lines: File content split into lines.
        pattern: Comment pattern (all its block tokens are stripped).
        pair: The start/end pair being scanned.

    Yields:
        CommentRecord per marker-bearing block, in line order.

    """
    for block in iter_block_comments(lines, pair, file_path):
        cleaned = clean_block_lines(block.lines, pattern.multiline_tokens)
        action_type = classify_lines(cleaned)
        if action_type is None:
            continue
        record = _build_record(
            file_path,
            lines,
            block.start_index,
            block.end_index + 1,
            cleaned,
            block.raw_text,
            action_type,
        )
        logger.debug(
            "Found block comment at %s:%d-%d - %s",
            file_path,
            record.start_line,
            record.end_line,
            record.content,
        )
        yield record


def extract_comments(file_path: str, content: str | bytes) -> list[CommentRecord]:
    """Extract marker comments from file content.

    Args:
        file_path: Path of the file (its extension selects the dialect and
            it is reported on every record).
        content: File content; bytes are decoded as UTF-8 with replacement.

    Returns:
        Records in ascending start-line order. Empty for unsupported
        extensions, empty content, opted-out files, and files above the
        line limit.

    """
    pattern = pattern_for_path(file_path)
    if pattern is None:
        logger.debug("No comment patterns defined for %s", file_path)
        return []

    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not content:
        return []

    lines = content.split("\n")
    if len(lines) > MAX_TOTAL_LINES:
        logger.warning(
            "Skipping %s: %d lines exceeds limit %d", file_path, len(lines), MAX_TOTAL_LINES
        )
        return []

    if has_opt_out(lines, pattern, file_path):
        return []

    records = list(iter_single_line_records(file_path, lines, pattern))
    for pair in pattern.multiline:
        records.extend(iter_multiline_records(file_path, lines, pattern, pair))
    records.sort(key=lambda r: r.start_line)

    logger.debug("Found %d marker comments in %s", len(records), file_path)
    return records


def extract_comments_from_file(path: str | Path) -> list[CommentRecord]:
    """Read a file and extract its marker comments.

    Args:
        path: File to read. Reported on records exactly as given.

    Returns:
        Records in line order; empty for unsupported or oversized files.

    Raises:
        ExtractionError: If the file cannot be stat'ed or read.

    """
    file_path = str(path)
    if pattern_for_path(file_path) is None:
        logger.debug("No comment patterns defined for %s", file_path)
        return []

    try:
        size = Path(file_path).stat().st_size
    except OSError as e:
        raise ExtractionError(f"Failed to stat file {file_path}: {e}", file_path) from e

    if size > MAX_FILE_SIZE:
        logger.warning(
            "Skipping %s: size %d bytes exceeds limit %d bytes", file_path, size, MAX_FILE_SIZE
        )
        return []

    try:
        data = Path(file_path).read_bytes()
    except OSError as e:
        raise ExtractionError(f"Failed to read file {file_path}: {e}", file_path) from e

    return extract_comments(file_path, data)
