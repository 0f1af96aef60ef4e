"""Prompt rendering for marker comments.

Turns CommentRecords into the text sent to the wrapped assistant. The
wording asks the assistant to replace the marker with ``[ai]`` once done,
which also keeps the same comment from being picked up again.
"""

from __future__ import annotations

from collections.abc import Sequence

from clawde.comments.types import ActionType, CommentRecord
from clawde.core.exceptions import MarkerInvariantError

COMMAND_INSTRUCTION = (
    "Make the appropriate changes. YOU MUST replace the AI! marker with [ai] when done."
)
QUESTION_INSTRUCTION = (
    "Answer the question(s), but DO NOT MAKE CHANGES. "
    "Replace the AI? marker with [ai] when done."
)
RELATED_CONTEXT_HEADER = "Related context:"


def _instruction(action_type: ActionType) -> str:
    if action_type is ActionType.COMMAND:
        return COMMAND_INSTRUCTION
    if action_type is ActionType.QUESTION:
        return QUESTION_INSTRUCTION
    raise MarkerInvariantError(f"No prompt instruction for action type {action_type!r}")


def _render_context_section(
    context_records: Sequence[CommentRecord] | None,
    exclude: Sequence[CommentRecord] = (),
) -> str:
    if not context_records:
        return ""
    skip = {r.fingerprint for r in exclude}
    entries = [
        f"- {r.file_path} at {r.location}: {r.content}"
        for r in context_records
        if r.fingerprint not in skip
    ]
    if not entries:
        return ""
    return "\n\n" + RELATED_CONTEXT_HEADER + "\n" + "\n".join(entries)


def render_prompt(
    record: CommentRecord,
    context_records: Sequence[CommentRecord] | None = None,
) -> str:
    """Render the prompt for one comment record.

    Args:
        record: Record to render.
        context_records: Optional AI: records appended as related context.

    Returns:
        Prompt text.

    Raises:
        MarkerInvariantError: If the record's action type has no rendering.

    """
    if record.action_type is ActionType.CONTEXT:
        prompt = f"Context from {record.file_path} at {record.location}: {record.content}"
    else:
        prompt = (
            f"See {record.file_path} at {record.location} and surrounding context. "
            f"{_instruction(record.action_type)}"
        )
    return prompt + _render_context_section(context_records, exclude=[record])


def render_batch_prompt(
    records: Sequence[CommentRecord],
    context_records: Sequence[CommentRecord] | None = None,
) -> str:
    """Render one prompt covering several actionable records.

    Uses the command wording when any record is a command, the question
    wording otherwise. A one-record batch renders exactly like
    render_prompt().

    Args:
        records: Actionable records, in the order they should be listed.
        context_records: Optional AI: records appended as related context.

    Returns:
        Prompt text.

    Raises:
        MarkerInvariantError: If the batch is empty or holds a
            non-actionable record.

    """
    if not records:
        raise MarkerInvariantError("Cannot render a prompt for an empty batch")
    for record in records:
        if not record.action_type.is_actionable:
            raise MarkerInvariantError(
                f"Non-actionable record in batch: {record.file_path} at {record.location}"
            )

    if len(records) == 1:
        return render_prompt(records[0], context_records)

    action_type = max((r.action_type for r in records), key=lambda a: a.priority)
    lines = [f"See the following locations and surrounding context. {_instruction(action_type)}"]
    lines.extend(f"- {r.file_path} at {r.location}" for r in records)
    return "\n".join(lines) + _render_context_section(context_records, exclude=records)
