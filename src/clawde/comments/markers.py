"""Marker classification for comment text.

A marker is ``AI!`` (command), ``AI?`` (question) or ``AI:`` (context),
matched case-insensitively on comment text that has already had its
comment syntax stripped. Valid positions:

- ``AI!`` / ``AI?``: the last word of the line (preceded by a space, or the
  whole line) or the very start of the line.
- ``AI:``: the very start of the line only.

A marker glued to the end of another word (``hawaii?``, ``samurai!``) never
matches. When a block holds several markers the highest priority wins:
command > question > context.
"""

from __future__ import annotations

from collections.abc import Iterable

from clawde.comments.types import ActionType

# Lowercased marker forms
_COMMAND = "ai!"
_QUESTION = "ai?"
_CONTEXT = "ai:"


def _is_trailing(line: str, marker: str) -> bool:
    return line == marker or line.endswith(" " + marker)


def classify_line(text: str) -> frozenset[ActionType]:
    """Return every marker found at a valid position in one line.

    Args:
        text: One line of comment text, comment tokens already removed.

    Returns:
        Set of action types (empty if the line carries no valid marker).

    """
    line = text.strip().lower()
    if not line:
        return frozenset()

    found: set[ActionType] = set()
    if _is_trailing(line, _COMMAND) or line.startswith(_COMMAND):
        found.add(ActionType.COMMAND)
    if _is_trailing(line, _QUESTION) or line.startswith(_QUESTION):
        found.add(ActionType.QUESTION)
    if line.startswith(_CONTEXT):
        found.add(ActionType.CONTEXT)
    return frozenset(found)


def classify_lines(lines: Iterable[str]) -> ActionType | None:
    """Resolve the action type of a comment block.

    Args:
        lines: Cleaned comment lines of one block.

    Returns:
        Highest-priority action type across all lines, or None if the block
        has no marker and must be discarded.

    """
    best: ActionType | None = None
    for line in lines:
        for action in classify_line(line):
            if best is None or action.priority > best.priority:
                best = action
                if best is ActionType.COMMAND:
                    return best
    return best


def contains_marker_text(content: str) -> bool:
    """Cheap case-insensitive substring check used as a search pre-filter.

    Unlike classify_line this ignores position, so it can report false
    positives; callers must run full extraction to confirm.
    """
    lowered = content.lower()
    return _QUESTION in lowered or _COMMAND in lowered or _CONTEXT in lowered
