"""File-level opt-out from marker extraction.

A file that mentions ``NO_CLAWDE`` (any case) inside any comment is skipped
entirely, wherever the comment sits in the file. Useful for files that
document the marker syntax itself.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from clawde.comments.patterns import CommentPattern
from clawde.comments.scanner import iter_block_comments, scan_line_comment

logger = logging.getLogger(__name__)

OPT_OUT_SENTINEL = "no_clawde"


def has_opt_out(lines: Sequence[str], pattern: CommentPattern, file_path: str = "") -> bool:
    """Check whether any comment in the file carries the opt-out sentinel.

    Uses the same tokenization as extraction: single-line comments via
    their registered tokens, block comments via closed start/end pairs.

    Args:
        lines: File content split into lines.
        pattern: Comment pattern of the file type.
        file_path: Used for log messages only.

    Returns:
        True if extraction must be skipped for this file.

    """
    if pattern.single_line:
        for i, line in enumerate(lines):
            comment = scan_line_comment(i, line, pattern.single_line)
            if comment is not None and OPT_OUT_SENTINEL in comment.text.lower():
                logger.info("Found NO_CLAWDE opt-out marker in %s:%d", file_path, i + 1)
                return True

    for pair in pattern.multiline:
        for block in iter_block_comments(lines, pair, file_path):
            if OPT_OUT_SENTINEL in block.raw_text.lower():
                logger.info(
                    "Found NO_CLAWDE opt-out marker in %s:%d", file_path, block.start_index + 1
                )
                return True

    return False
