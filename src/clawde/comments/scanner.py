"""Lexical comment tokenizer shared by the extractors and the opt-out scan.

Two primitives:
- scan_line_comment(): locate a single-line comment token on one line
- iter_block_comments(): yield closed block comments for one token pair

Both work on plain lines with no knowledge of string literals, so a token
inside a string is treated as a comment.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from clawde.comments.patterns import MultilineTokens

logger = logging.getLogger(__name__)

# Lines longer than this are skipped by every scanner (10KB)
MAX_LINE_LENGTH = 10 * 1024


@dataclass(frozen=True, slots=True)
class LineComment:
    """A single-line comment found on one physical line.

    Attributes:
        index: 0-based line index.
        token: The comment token that starts the comment.
        text: Everything after the first token occurrence, stripped.
        whole_line: True if only whitespace precedes the token.
        line: The untouched physical line.

    """

    index: int
    token: str
    text: str
    whole_line: bool
    line: str


@dataclass(frozen=True, slots=True)
class BlockComment:
    """A closed block comment.

    Attributes:
        start_index: 0-based index of the opening line.
        end_index: 0-based index of the closing line.
        lines: Raw physical lines from opening to closing, inclusive.

    """

    start_index: int
    end_index: int
    lines: tuple[str, ...]

    @property
    def raw_text(self) -> str:
        """Block text exactly as it appears in the file."""
        return "\n".join(self.lines)


def scan_line_comment(index: int, line: str, tokens: Sequence[str]) -> LineComment | None:
    """Find the single-line comment on a line, if any.

    When several tokens are registered, the one occurring earliest on the
    line wins; ties go to the token listed first.

    Args:
        index: 0-based line index (carried into the result).
        line: Physical line.
        tokens: Registered single-line tokens for the file type.

    Returns:
        LineComment, or None if no token occurs on the line.

    """
    best_pos = -1
    best_token = ""
    for token in tokens:
        pos = line.find(token)
        if pos != -1 and (best_pos == -1 or pos < best_pos):
            best_pos = pos
            best_token = token

    if best_pos == -1:
        return None

    return LineComment(
        index=index,
        token=best_token,
        text=line[best_pos + len(best_token) :].strip(),
        whole_line=not line[:best_pos].strip(),
        line=line,
    )


def has_content_between(line: str, pair: MultilineTokens) -> bool:
    """Check for non-whitespace text between a block's tokens on one line.

    For symmetric tokens the text between the first and last occurrence is
    checked; for asymmetric tokens the text between the first start token
    and the first end token. ``/**/`` and ``\"\"\"\"\"\"`` have nothing
    between their tokens and return False.
    """
    if pair.is_symmetric:
        matches = list(re.finditer(re.escape(pair.start), line))
        if len(matches) < 2:
            return False
        return bool(line[matches[0].end() : matches[-1].start()].strip())

    start = line.find(pair.start)
    end = line.find(pair.end)
    if start == -1 or end == -1:
        return False
    content_start = start + len(pair.start)
    if content_start > end:
        return False
    return bool(line[content_start:end].strip())


def iter_block_comments(
    lines: Sequence[str],
    pair: MultilineTokens,
    file_path: str = "",
) -> Iterator[BlockComment]:
    """Yield closed block comments for one start/end token pair.

    A start token opens a block. If the end token is on the same line with
    content between the two, the block closes at once; otherwise lines
    accumulate until a line containing the end token. A block still open at
    end of file is dropped.

    Args:
        lines: File content split into physical lines.
        pair: Start/end tokens.
        file_path: Used for log messages only.

    Yields:
        BlockComment for each closed block, in line order.

    """
    inside = False
    start_index = 0
    buffer: list[str] = []

    for i, line in enumerate(lines):
        if len(line) > MAX_LINE_LENGTH:
            logger.debug(
                "Skipping line %d in %s: length %d exceeds limit %d",
                i + 1,
                file_path,
                len(line),
                MAX_LINE_LENGTH,
            )
            continue

        if not inside:
            if pair.start not in line:
                continue
            inside = True
            start_index = i
            buffer = [line]
            if pair.end in line and has_content_between(line, pair):
                yield BlockComment(start_index=i, end_index=i, lines=(line,))
                inside = False
                buffer = []
            continue

        buffer.append(line)
        if pair.end in line:
            yield BlockComment(start_index=start_index, end_index=i, lines=tuple(buffer))
            inside = False
            buffer = []

    if inside:
        logger.debug(
            "Unterminated %s block at %s:%d ignored", pair.start, file_path, start_index + 1
        )


def clean_block_lines(raw_lines: Sequence[str], tokens: Sequence[str]) -> list[str]:
    """Strip block comment syntax from each line.

    Removes every token in ``tokens``, then surrounding whitespace and one
    leading ``*`` (boxed comment style). Lines left empty are dropped.

    Args:
        raw_lines: Physical lines of one block.
        tokens: All multi-line tokens registered for the file type.

    Returns:
        Cleaned, non-empty lines.

    """
    text = "\n".join(raw_lines)
    for token in tokens:
        text = text.replace(token, "")

    cleaned: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip().removeprefix("*").strip()
        if stripped:
            cleaned.append(stripped)
    return cleaned
