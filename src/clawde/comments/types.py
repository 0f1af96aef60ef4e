"""Core data types for the comment marker pipeline.

Defines ActionType and CommentRecord, the representation shared by the
extractors, the dedup cache, and the prompt renderer.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum


class ActionType(str, Enum):
    """Action requested by a marker comment.

    The value is the marker punctuation (``AI!``, ``AI?``, ``AI:``).
    """

    COMMAND = "!"
    QUESTION = "?"
    CONTEXT = ":"

    @property
    def priority(self) -> int:
        """Precedence when a block carries several markers (higher wins)."""
        return _PRIORITY[self]

    @property
    def is_actionable(self) -> bool:
        """True for markers that trigger a prompt on their own."""
        return self is not ActionType.CONTEXT

    @property
    def marker(self) -> str:
        """Canonical marker text, e.g. ``AI!``."""
        return f"AI{self.value}"


_PRIORITY: dict[ActionType, int] = {
    ActionType.COMMAND: 3,
    ActionType.QUESTION: 2,
    ActionType.CONTEXT: 1,
}


def compute_fingerprint(
    file_path: str,
    start_line: int,
    content: str,
    action_type: ActionType,
) -> str:
    """Compute the dedup fingerprint of a comment occurrence.

    First 8 bytes of SHA-256 over ``path:line:content:action``, hex encoded.

    Args:
        file_path: Source file path as reported on the record.
        start_line: 1-indexed start line.
        content: Truncated, marker-bearing content.
        action_type: Resolved action type.

    Returns:
        16-character hex digest.

    """
    data = f"{file_path}:{start_line}:{content}:{action_type.value}"
    # surrogateescape keeps undecodable filename bytes hashable
    return hashlib.sha256(data.encode("utf-8", "surrogateescape")).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class CommentRecord:
    """One marker-bearing comment block found in a source file.

    Attributes:
        file_path: Path of the file containing the comment.
        start_line: 1-indexed first line of the block.
        end_line: 1-indexed last line, or None for a block made of a
            single physical line comment.
        content: Comment text with syntax stripped, lines joined with single
            spaces, truncated to the content cap.
        raw_text: Original comment text, never truncated.
        action_type: Highest-priority marker found in the block.
        context_lines: Surrounding source lines, target line marked with ``>``.
        fingerprint: Deterministic digest used for deduplication.

    """

    file_path: str
    start_line: int
    content: str
    raw_text: str
    action_type: ActionType
    end_line: int | None = None
    context_lines: tuple[str, ...] = ()
    fingerprint: str = field(default="")

    def __post_init__(self) -> None:
        if self.end_line is not None and self.end_line < self.start_line:
            raise ValueError(
                f"end_line {self.end_line} is before start_line {self.start_line}"
            )
        if not self.fingerprint:
            object.__setattr__(
                self,
                "fingerprint",
                compute_fingerprint(
                    self.file_path, self.start_line, self.content, self.action_type
                ),
            )

    @property
    def is_multiline(self) -> bool:
        """True when the record spans more than one physical line."""
        return self.end_line is not None and self.end_line != self.start_line

    @property
    def location(self) -> str:
        """Human-readable line location: ``line N`` or ``lines N-M``."""
        if self.is_multiline:
            return f"lines {self.start_line}-{self.end_line}"
        return f"line {self.start_line}"
